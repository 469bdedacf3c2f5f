from pymongo.errors import PyMongoError

INVOICE = {"type": "customer", "recipient": "Acme Ltd", "amount": 250, "date": "2024-01-15", "dueDate": "2024-02-15"}


class BrokenCollection:
    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise PyMongoError("connection reset")

        return fail


def test_no_records_no_activity(client, auth) -> None:
    resp = client.get("/api/activities", headers=auth)
    assert resp.status_code == 200
    assert resp.json() == []


def test_feed_takes_two_newest_per_type_newest_first(client, auth) -> None:
    customers = [client.post("/api/customers", json={"name": n}, headers=auth).json() for n in ("One", "Two", "Three")]
    invoice = client.post("/api/invoices", json=INVOICE, headers=auth).json()

    feed = client.get("/api/activities", headers=auth).json()
    assert [a["id"] for a in feed] == [
        f"invoice-{invoice['id']}",
        f"customer-{customers[2]['id']}",
        f"customer-{customers[1]['id']}",
    ]
    assert [a["action"] for a in feed] == ["created", "added", "added"]
    assert feed[0]["details"] == 'Invoice for "Acme Ltd" ($250) - pending'
    assert feed[1]["details"] == 'New customer "Three" registered'
    assert feed[0]["time"] == invoice["createdAt"]


def test_feed_is_capped_at_five(client, auth) -> None:
    for n in range(3):
        client.post("/api/customers", json={"name": f"c{n}"}, headers=auth)
        client.post("/api/invoices", json=INVOICE, headers=auth)
        client.post("/api/products", json={"name": f"p{n}", "sku": f"S{n}", "price": 1, "stock": n}, headers=auth)

    feed = client.get("/api/activities", headers=auth).json()
    assert len(feed) == 5
    times = [a["time"] for a in feed]
    assert times == sorted(times, reverse=True)
    assert feed[0] == {
        "id": feed[0]["id"],
        "type": "product",
        "action": "updated",
        "details": 'Product "p2" stock: 2',
        "time": feed[0]["time"],
    }


def test_feed_is_scoped_to_owner(client, auth, other_auth) -> None:
    client.post("/api/customers", json={"name": "Mine"}, headers=auth)
    client.post("/api/customers", json={"name": "Theirs"}, headers=other_auth)
    feed = client.get("/api/activities", headers=auth).json()
    assert [a["details"] for a in feed] == ['New customer "Mine" registered']


def test_feed_failure_returns_empty_list(client, app, auth, monkeypatch) -> None:
    client.post("/api/customers", json={"name": "Acme"}, headers=auth)
    monkeypatch.setattr(app.state.stores.customers, "collection", BrokenCollection())
    resp = client.get("/api/activities", headers=auth)
    assert resp.status_code == 200
    assert resp.json() == []


def test_feed_requires_token(client) -> None:
    assert client.get("/api/activities").status_code == 401


def test_fractional_stock_is_shown_as_is(client, auth) -> None:
    client.post("/api/products", json={"name": "Cable", "sku": "C-1", "price": 2, "stock": 2.5}, headers=auth)
    feed = client.get("/api/activities", headers=auth).json()
    assert feed[0]["details"] == 'Product "Cable" stock: 2.5'
