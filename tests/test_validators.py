import pytest

from barbersmart.shared.numbers import round_half_up, safe_ratio
from barbersmart.shared.validators import (
    format_phone,
    validate_br_phone,
    validate_cpf_cnpj,
    validate_domain,
    validate_email,
    validate_hex_color,
    validate_subdomain,
    validate_time_hhmm,
    validate_uuid,
)


def test_phone_is_normalized_to_national_digits():
    assert validate_br_phone("(11) 98765-4321") == "11987654321"
    assert validate_br_phone("+55 11 98765-4321") == "11987654321"
    assert validate_br_phone("11 3333-4444") == "1133334444"
    assert validate_br_phone(None) is None


def test_invalid_phone():
    with pytest.raises(ValueError):
        validate_br_phone("1234")


def test_format_phone():
    assert format_phone("11987654321") == "(11) 98765-4321"
    assert format_phone("1133334444") == "(11) 3333-4444"


def test_cpf_and_cnpj():
    assert validate_cpf_cnpj("529.982.247-25") == "52998224725"
    assert validate_cpf_cnpj("11.222.333/0001-81") == "11222333000181"
    with pytest.raises(ValueError, match="CPF"):
        validate_cpf_cnpj("111.111.111-11")
    with pytest.raises(ValueError, match="CNPJ"):
        validate_cpf_cnpj("11.222.333/0001-80")
    with pytest.raises(ValueError):
        validate_cpf_cnpj("123")


def test_email():
    assert validate_email(" Joao@Example.COM ") == "joao@example.com"
    with pytest.raises(ValueError):
        validate_email("joao@")


def test_hex_color():
    assert validate_hex_color("#d4a574") == "#D4A574"
    with pytest.raises(ValueError):
        validate_hex_color("red")


def test_time():
    assert validate_time_hhmm("09:30:00") == "09:30"
    with pytest.raises(ValueError):
        validate_time_hhmm("24:00")


def test_subdomain():
    assert validate_subdomain("Minha-Barbearia") == "minha-barbearia"
    for bad in ("ab", "-abc", "abc-", "a b c"):
        with pytest.raises(ValueError):
            validate_subdomain(bad)


def test_domain():
    assert validate_domain("https://MinhaBarbearia.com.br/") == "minhabarbearia.com.br"
    with pytest.raises(ValueError):
        validate_domain("localhost")


def test_uuid():
    assert validate_uuid("3f2b8c1e-6a1d-4c1e-9b1a-2f3e4d5c6b7a")
    assert not validate_uuid("not-a-uuid")


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.125, 2) == 0.13
    assert safe_ratio(1, 0) == 0.0
