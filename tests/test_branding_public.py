import base64

import httpx
import pytest

from barbersmart.domain.branding import images
from barbersmart.domain.branding.images import build_prompt, calculate_dimensions
from barbersmart.models import Barbershop, Review, Service
from barbersmart.models_integrations import BarbershopDomain, BrandingConfig


def test_calculate_dimensions():
    assert calculate_dimensions(2000, 1000, 1000) == (1000, 500)
    assert calculate_dimensions(800, 600, 1000) == (800, 600)
    assert calculate_dimensions(1000, 2000, 1000, 500) == (250, 500)


def test_prompts_mention_brand_and_color():
    prompt = build_prompt("favicon", "Navalha", "#112233")
    assert "Navalha" in prompt
    assert "#112233" in prompt
    assert "No text" in prompt
    assert "dark background" in build_prompt("logo-dark", "Navalha", "#112233")


# ============================================================================
# BRANDING
# ============================================================================


def test_default_branding(client, tenant):
    body = client.get("/branding", headers=tenant.headers).json()
    assert body["system_name"] == "BarberSmart"
    assert body["primary_color"] == "#D4A574"


def test_update_branding(client, db, tenant):
    response = client.put(
        "/branding", json={"system_name": "  Navalha  ", "primary_color": "#aabbcc"}, headers=tenant.headers
    )
    assert response.status_code == 200
    assert response.json()["system_name"] == "Navalha"
    assert response.json()["primary_color"] == "#AABBCC"
    assert db.query(BrandingConfig).count() == 1

    assert client.put("/branding", json={"primary_color": "azul"}, headers=tenant.headers).status_code == 422


def test_generate_without_api_key(client, tenant, monkeypatch):
    monkeypatch.setattr(images, "OPENAI_API_KEY", None)
    response = client.post("/branding/generate", json={"type": "favicon"}, headers=tenant.headers)
    assert response.status_code == 502


def test_generate_images(client, tenant, monkeypatch):
    uploads = []
    png = base64.b64encode(b"png-bytes").decode()

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": [{"b64_json": png}]})

    def fake_put(key, body, content_type):
        uploads.append((key, body, content_type))
        return f"https://cdn.test/{key}"

    monkeypatch.setattr(images, "OPENAI_API_KEY", "sk-test")
    monkeypatch.setattr(images, "_http_client", lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    monkeypatch.setattr(images, "put_public_object", fake_put)

    response = client.post("/branding/generate", json={"type": "all", "brand_name": "Navalha"}, headers=tenant.headers)

    assert response.status_code == 200
    body = response.json()
    assert sorted(body["images"]) == ["favicon_url", "logo_dark_url", "logo_url"]
    assert body["branding"]["system_name"] == "Navalha"
    assert all(upload[1] == b"png-bytes" for upload in uploads)


# ============================================================================
# PUBLIC LANDING
# ============================================================================


@pytest.fixture
def landing(db, tenant):
    child = Barbershop(name="Unidade Centro", parent_id=tenant.root.id, address="Rua A, 10")
    db.add(child)
    db.commit()
    db.add_all(
        [
            BarbershopDomain(barbershop_id=child.id, subdomain="centro"),
            BrandingConfig(barbershop_id=tenant.root.id, system_name="Navalha", primary_color="#112233"),
            Service(barbershop_id=child.id, name="Corte", price=50, duration_minutes=30),
            Service(barbershop_id=child.id, name="Barba", price=30, duration_minutes=20),
            Service(barbershop_id=child.id, name="Antigo", price=10, active=False),
            Review(barbershop_id=child.id, rating=5),
            Review(barbershop_id=child.id, rating=4),
        ]
    )
    db.commit()
    return child


def test_landing_by_subdomain(client, landing):
    response = client.get("/public/landing/Centro")
    assert response.status_code == 200
    body = response.json()
    assert body["unit"]["name"] == "Unidade Centro"
    assert body["branding"]["system_name"] == "Navalha"
    assert body["branding"]["has_white_label"] is True
    assert [s["name"] for s in body["services"]] == ["Barba", "Corte"]
    assert body["rating"] == {"average": 4.5, "count": 2}


def test_landing_for_inactive_unit(client, db, landing):
    landing.active = False
    db.commit()
    assert client.get("/public/landing/centro").status_code == 404
    assert client.get("/public/landing/desconhecida").status_code == 404


def test_public_unit_by_id(client, tenant):
    body = client.get(f"/public/units/{tenant.root.id}").json()
    assert [h["day_of_week"] for h in body["business_hours"]][:2] == ["monday", "tuesday"]
    assert body["branding"]["has_white_label"] is False
    assert body["branding"]["system_name"] == "BarberSmart"
