from types import SimpleNamespace

import dns.exception
import pytest

from barbersmart.config import CUSTOM_DOMAIN_EXPECTED_IP
from barbersmart.models_integrations import BarbershopDomain
from barbersmart.services import dns_service

TOKEN = "barbersmart_verify_abc123"


def _fake_dns(records: dict):
    def lookup(name, record_type):
        return records.get((name, record_type), [])

    return lookup


@pytest.fixture
def fully_configured(monkeypatch):
    monkeypatch.setattr(
        dns_service,
        "lookup_records",
        _fake_dns(
            {
                ("minhabarbearia.com.br", "A"): [CUSTOM_DOMAIN_EXPECTED_IP],
                ("www.minhabarbearia.com.br", "A"): [CUSTOM_DOMAIN_EXPECTED_IP],
                ("_barbersmart.minhabarbearia.com.br", "TXT"): ["other", TOKEN],
            }
        ),
    )


def test_verified_when_a_and_txt_match(fully_configured):
    result = dns_service.check_domain("MinhaBarbearia.com.br", TOKEN)
    assert result.overall_status == dns_service.STATUS_VERIFIED
    assert result.a_record.configured
    assert result.www_record.configured
    assert result.txt_record.value == f"other, {TOKEN}"


def test_partial_when_only_a_record(monkeypatch):
    monkeypatch.setattr(
        dns_service, "lookup_records", _fake_dns({("minhabarbearia.com.br", "A"): [CUSTOM_DOMAIN_EXPECTED_IP]})
    )
    result = dns_service.check_domain("minhabarbearia.com.br", TOKEN)
    assert result.overall_status == dns_service.STATUS_PARTIAL
    assert not result.txt_record.configured


def test_wrong_ip_is_pending(monkeypatch):
    monkeypatch.setattr(dns_service, "lookup_records", _fake_dns({("minhabarbearia.com.br", "A"): ["1.2.3.4"]}))
    result = dns_service.check_domain("minhabarbearia.com.br", TOKEN)
    assert result.overall_status == dns_service.STATUS_PENDING
    assert result.a_record.value == "1.2.3.4"
    assert result.a_record.expected == CUSTOM_DOMAIN_EXPECTED_IP


def test_without_token_txt_never_matches(fully_configured):
    result = dns_service.check_domain("minhabarbearia.com.br", None)
    assert result.overall_status == dns_service.STATUS_PARTIAL


def test_lookup_failure_returns_no_records(monkeypatch):
    def timeout(name, record_type):
        raise dns.exception.Timeout()

    monkeypatch.setattr(dns_service.dns.resolver, "resolve", timeout)
    assert dns_service.lookup_records("minhabarbearia.com.br", "A") == []


def test_txt_values_are_joined_and_unquoted(monkeypatch):
    answers = [SimpleNamespace(strings=[b'"barbersmart_verify_', b'abc123"'])]
    monkeypatch.setattr(dns_service.dns.resolver, "resolve", lambda name, record_type: answers)
    assert dns_service.lookup_records("_barbersmart.minhabarbearia.com.br", "TXT") == [TOKEN]


def test_verified_domain_moves_to_setting_up(db, tenant, fully_configured):
    db.add(
        BarbershopDomain(
            barbershop_id=tenant.root.id, custom_domain="minhabarbearia.com.br", verification_token=TOKEN
        )
    )
    db.commit()

    result = dns_service.verify_custom_domain(db, "minhabarbearia.com.br", TOKEN, tenant.root.id)

    row = db.query(BarbershopDomain).filter(BarbershopDomain.barbershop_id == tenant.root.id).one()
    assert result["overall_status"] == "verified"
    assert row.custom_domain_status == "setting_up"
    assert row.dns_verified_at is not None
    assert row.last_checked_at is not None


def test_verify_endpoint_requires_custom_domain(client, tenant):
    response = client.post("/domains/verify", headers=tenant.headers)
    assert response.status_code == 400


def test_domain_update_starts_verification(client, tenant, fully_configured):
    response = client.put("/domains", json={"custom_domain": "MinhaBarbearia.com.br"}, headers=tenant.headers)
    assert response.status_code == 200
    body = response.json()
    assert body["custom_domain"] == "minhabarbearia.com.br"
    assert body["custom_domain_status"] == "pending"
    assert body["verification_token"].startswith("barbersmart_verify_")
    assert {"type": "TXT", "name": "_barbersmart.minhabarbearia.com.br", "value": body["verification_token"]} in body[
        "dns_records"
    ]


def test_platform_domain_is_not_a_custom_domain(client, tenant):
    response = client.put("/domains", json={"custom_domain": "loja.barbersmart.app"}, headers=tenant.headers)
    assert response.status_code == 422
