def _create_currency(client, headers, code, name, symbol=""):
    r = client.post("/valuation/currencies", json={"code": code, "name": name, "symbol": symbol}, headers=headers)
    assert r.status_code == 200, r.text
    return r.json()


def _create_metal(client, headers, name, symbol, reference_value):
    r = client.post(
        "/valuation/metals",
        json={"name": name, "symbol": symbol, "reference_value": reference_value},
        headers=headers,
    )
    assert r.status_code == 200, r.text
    return r.json()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_requires_token(client, tenant):
    r = client.get("/valuation/currencies", headers={"X-Tenant-ID": tenant.slug})
    assert r.status_code == 401


def test_seller_can_read_but_not_write(client, seller_headers, ars):
    r = client.get("/valuation/currencies", headers=seller_headers)
    assert r.status_code == 200
    assert [c["code"] for c in r.json()] == ["ARS"]

    r = client.post("/valuation/currencies", json={"code": "USD", "name": "Dólar"}, headers=seller_headers)
    assert r.status_code == 403


def test_valuation_flow(client, auth_headers):
    ars = _create_currency(client, auth_headers, "ars", "Peso", "$")
    assert ars["is_base"] is True
    assert ars["latest_rate"] == 1

    usd = _create_currency(client, auth_headers, "usd", "Dólar", "US$")
    assert usd["is_base"] is False
    assert usd["latest_rate"] is None

    r = client.post(f"/valuation/currencies/{usd['id']}/rates", json={"rate": "1000"}, headers=auth_headers)
    assert r.status_code == 200, r.text
    assert r.json()["rate"] == 1000
    assert r.json()["created_by"]["email"] == "owner@test.com"

    r = client.get(f"/valuation/currencies/{usd['id']}/history", headers=auth_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["current"]["rate"] == 1000
    assert body["current"]["is_implicit"] is False
    assert len(body["history"]) == 1

    oro = _create_metal(client, auth_headers, "Oro", "Au", "100000")
    assert oro["sort_order"] == 1

    r = client.post(
        "/valuation/variants",
        json={
            "metal_id": oro["id"],
            "name": "Oro 18k",
            "sku": "AU-18K",
            "purity": "0.75",
            "buy_factor": "0.95",
            "sale_factor": "1.1",
        },
        headers=auth_headers,
    )
    assert r.status_code == 200, r.text
    variant = r.json()
    assert variant["suggested_price"] == 75000
    assert variant["final_purchase_price"] == 71250
    assert variant["final_sale_price"] == 82500
    assert variant["pricing_mode"] == "AUTO"

    r = client.get(f"/valuation/metals/{oro['id']}/variants", headers=auth_headers)
    assert r.status_code == 200
    assert [v["sku"] for v in r.json()] == ["AU-18K"]

    r = client.post(f"/valuation/currencies/{usd['id']}/set-base", headers=auth_headers)
    assert r.status_code == 200, r.text
    switched = r.json()
    assert switched["changed"] is True
    assert switched["factor"] == 1000
    assert switched["metals_recomputed"] == 1
    assert switched["previous_base_id"] == ars["id"]
    assert switched["currency"]["is_base"] is True

    r = client.get(f"/valuation/metals/{oro['id']}", headers=auth_headers)
    assert r.json()["reference_value"] == 100

    r = client.get(f"/valuation/metals/{oro['id']}/ref-history", headers=auth_headers)
    assert r.status_code == 200
    history = r.json()
    assert history["current"]["reference_value"] == 100
    assert len(history["history"]) == 2

    r = client.get(f"/valuation/variants/{variant['id']}", headers=auth_headers)
    assert r.json()["final_sale_price"] == 82.5


def test_duplicate_currency_code(client, auth_headers, ars):
    r = client.post("/valuation/currencies", json={"code": "Ars", "name": "Otro"}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "DUPLICATE_CODE"


def test_base_cannot_be_deactivated(client, auth_headers, ars):
    r = client.patch(f"/valuation/currencies/{ars.id}/active", json={"is_active": False}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "CANNOT_DEACTIVATE_BASE"


def test_base_rejects_rates(client, auth_headers, ars):
    r = client.post(f"/valuation/currencies/{ars.id}/rates", json={"rate": 2}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "BASE_CURRENCY_IMMUTABLE"


def test_future_rate_rejected(client, auth_headers, usd):
    r = client.post(
        f"/valuation/currencies/{usd.id}/rates",
        json={"rate": 1100, "effective_at": "2999-01-01T00:00:00"},
        headers=auth_headers,
    )
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "INVALID_TIMESTAMP"


def test_set_base_without_rate(client, auth_headers, ars):
    eur = _create_currency(client, auth_headers, "EUR", "Euro", "€")
    r = client.post(f"/valuation/currencies/{eur['id']}/set-base", json={}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "MISSING_RATE"

    r = client.get("/valuation/currencies", headers=auth_headers)
    assert [c["code"] for c in r.json() if c["is_base"]] == ["ARS"]


def test_delete_metal_with_variants_is_in_use(client, auth_headers, oro, oro_18k):
    r = client.delete(f"/valuation/metals/{oro.id}", headers=auth_headers)
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "IN_USE"


def test_unknown_variant_is_not_found(client, auth_headers):
    r = client.get("/valuation/variants/999", headers=auth_headers)
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "NOT_FOUND"


def test_move_metal(client, auth_headers):
    oro = _create_metal(client, auth_headers, "Oro", "Au", "100000")
    plata = _create_metal(client, auth_headers, "Plata", "Ag", "1200")

    r = client.post(f"/valuation/metals/{oro['id']}/move", json={"dir": "UP"}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["changed"] is False

    r = client.post(f"/valuation/metals/{plata['id']}/move", json={"dir": "up"}, headers=auth_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["changed"] is True
    assert [m["name"] for m in body["rows"]] == ["Plata", "Oro"]

    r = client.post(f"/valuation/metals/{plata['id']}/move", json={"dir": "SIDEWAYS"}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "INVALID_VALUE"


def test_pricing_patch(client, auth_headers, oro_18k):
    url = f"/valuation/variants/{oro_18k.id}/pricing"
    r = client.patch(url, json={"pricing_mode": "OVERRIDE", "purchase_price_override": "70000"}, headers=auth_headers)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["final_purchase_price"] == 70000
    assert body["final_sale_price"] == 82500
    assert body["buy_factor"] == 0.95

    r = client.patch(url, json={"clear_purchase_override": True}, headers=auth_headers)
    body = r.json()
    assert body["purchase_price_override"] is None
    assert body["pricing_mode"] == "OVERRIDE"
    assert body["final_purchase_price"] == 71250

    r = client.patch(url, json={"buy_factor": 0}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "INVALID_VALUE"


def test_favorite_endpoints(client, auth_headers, oro, oro_18k):
    r = client.post(
        "/valuation/variants",
        json={"metal_id": oro.id, "name": "Oro 24k", "sku": "AU-24K", "purity": 1},
        headers=auth_headers,
    )
    oro_24k = r.json()

    assert client.post(f"/valuation/variants/{oro_18k.id}/set-favorite", headers=auth_headers).json()["is_favorite"] is True
    assert client.post(f"/valuation/variants/{oro_24k['id']}/set-favorite", headers=auth_headers).status_code == 200

    r = client.get(f"/valuation/metals/{oro.id}/variants", params={"only_favorites": True}, headers=auth_headers)
    assert [v["sku"] for v in r.json()] == ["AU-24K"]

    r = client.post(f"/valuation/metals/{oro.id}/clear-favorite", headers=auth_headers)
    assert r.json() == {"ok": True, "cleared": 1}
    r = client.get(f"/valuation/metals/{oro.id}/variants", params={"only_favorites": True}, headers=auth_headers)
    assert r.json() == []


def test_quotes(client, auth_headers, usd, oro_18k):
    r = client.post(
        "/valuation/quotes",
        json={"variant_id": oro_18k.id, "currency_id": usd.id, "purchase_price": "90", "sale_price": "80"},
        headers=auth_headers,
    )
    assert r.status_code == 200, r.text
    assert r.json()["warnings"] == ["SALE_BELOW_PURCHASE"]
    assert r.json()["quote"]["currency"]["code"] == "USD"

    r = client.get(f"/valuation/variants/{oro_18k.id}/quotes", headers=auth_headers)
    assert len(r.json()) == 1

    r = client.get(
        f"/valuation/metals/{oro_18k.metal_id}/variants",
        params={"currency_id": usd.id},
        headers=auth_headers,
    )
    assert r.json()[0]["latest_quote"]["sale_price"] == 80

    r = client.delete(f"/valuation/variants/{oro_18k.id}", headers=auth_headers)
    assert r.status_code == 409


def test_initialize_database_seeds_demo(client):
    r = client.post("/init/initialize-database")
    assert r.status_code == 200, r.text
    assert r.json()["tenant"] == "demo"

    status = client.get("/init/database-status").json()
    assert status["initialized"] is True
    assert status["currencies"] == 3
    assert status["metals"] == 2
    assert status["variants"] == 5
