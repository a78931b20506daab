from conftest import sponsorship_payload, tx_payload


def _mutate(client, headers=None, **payload):
    return client.post("/event-finance", json=payload, headers=headers or {})


def _create_item(client, name="Venue", **overrides):
    data = {
        "category_name": name,
        "macro_category": "Logistics",
        "unit_cost_original": 1000,
        "currency": "EUR",
        "quantity": 1,
    }
    data.update(overrides)
    response = _mutate(client, entity="budget_item", action="create", data=data)
    assert response.status_code == 200
    return response.json()["budget_item"]


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_root_redirects_to_report(client):
    response = client.get("/", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/event-finance/report"


def test_empty_dataset(client):
    data = client.get("/event-finance").json()

    assert data["settings"]["reporting_currency"] == "EUR"
    assert data["settings"]["secondary_currency"] == "HUF"
    assert data["settings"]["exchange_rate"] == 400.0
    assert data["budget_items"] == []
    assert data["transactions"] == []
    assert data["sponsorships"] == []


def test_transaction_mutation_round_trip(client):
    venue = _create_item(client)

    response = _mutate(
        client,
        headers={"X-User-Id": "user-7"},
        entity="transaction",
        action="create",
        data=tx_payload(amount_original=150),
        allocations=[{"budget_item_id": venue["id"], "amount_original": 150}],
    )

    assert response.status_code == 200
    tx = response.json()["transaction"]
    assert tx["created_by"] == "user-7"
    assert tx["amount_original"] == 150.0
    assert [a["budget_item_id"] for a in tx["allocations"]] == [venue["id"]]

    dataset = client.get("/event-finance").json()
    assert [t["id"] for t in dataset["transactions"]] == [tx["id"]]
    assert dataset["transaction_allocations"][0]["transaction_id"] == tx["id"]
    assert dataset["macro_categories"] == ["Logistics"]


def test_unbalanced_allocations_return_400(client):
    venue = _create_item(client)
    catering = _create_item(client, "Catering")

    response = _mutate(
        client,
        entity="transaction",
        action="create",
        data=tx_payload(amount_original="150.00"),
        allocations=[
            {"budget_item_id": venue["id"], "amount_original": "90.00"},
            {"budget_item_id": catering["id"], "amount_original": "59.99"},
        ],
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Allocations total (149.99) must match amount (150.00)"}
    assert client.get("/event-finance").json()["transactions"] == []


def test_update_of_missing_record_returns_404(client):
    response = _mutate(
        client,
        entity="transaction",
        action="update",
        id="does-not-exist",
        data=tx_payload(),
    )
    assert response.status_code == 404
    assert response.json() == {"error": "Transaction not found"}


def test_delete_without_id_returns_400(client):
    response = _mutate(client, entity="sponsorship", action="delete")
    assert response.status_code == 400
    assert response.json() == {"error": "id is required"}


def test_unknown_entity_is_rejected_by_schema(client):
    response = _mutate(client, entity="invoice", action="create")
    assert response.status_code == 422


def test_settings_only_support_update(client):
    response = _mutate(client, entity="settings", action="create", data={"event_name": "x"})
    assert response.status_code == 400


def test_settings_update(client):
    response = _mutate(
        client,
        entity="settings",
        action="update",
        data={"event_name": "Summit", "exchange_rate": 390, "accounts": ["Bank"]},
    )

    assert response.status_code == 200
    settings = response.json()["settings"]
    assert settings["event_name"] == "Summit"
    assert settings["exchange_rate"] == 390.0
    assert settings["accounts"] == ["Bank"]


def test_sponsorship_warnings_are_returned(client):
    response = _mutate(
        client,
        entity="sponsorship",
        action="create",
        data=sponsorship_payload(paid_amount_original=100),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["sponsorship"]["status"] == "pledged"
    assert body["warnings"] == ["Paid amount is greater than zero but status is still 'pledged'"]


def test_delete_budget_item(client):
    venue = _create_item(client)

    response = _mutate(client, entity="budget_item", action="delete", id=venue["id"])

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert client.get("/event-finance").json()["budget_items"] == []


def test_report_reflects_secondary_currency_expense(client):
    venue = _create_item(client, unit_cost_original=100)
    _mutate(
        client,
        entity="transaction",
        action="create",
        data=tx_payload(amount_original=4000, currency="HUF"),
        allocations=[{"budget_item_id": venue["id"], "amount_original": 4000}],
    )

    report = client.get("/event-finance/report").json()

    assert report["overview"]["expenses"] == 10.0
    assert report["overview"]["planned"] == 100.0
    assert report["budget_lines"][0]["spent"] == 10.0


def test_export_returns_workbook(client):
    _create_item(client)

    response = client.get("/event-finance/export")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert "event-finance-" in response.headers["content-disposition"]
    assert response.content[:2] == b"PK"
