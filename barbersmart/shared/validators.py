"""Shared validation utilities"""

import re
import uuid
from typing import Optional


def validate_uuid(value: str) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError):
        return False


def only_digits(value: Optional[str]) -> str:
    return re.sub(r"\D", "", value or "")


def validate_br_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize a Brazilian phone number.

    Accepts 10 (landline) or 11 (mobile) digits with DDD, optionally prefixed
    with the 55 country code, and stores the national digits only.

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    digits = only_digits(phone)
    if digits.startswith("55") and len(digits) in (12, 13):
        digits = digits[2:]

    if len(digits) not in (10, 11):
        raise ValueError("Telefone deve ter 10 ou 11 dígitos com DDD")

    return digits


def format_phone(phone: Optional[str]) -> str:
    """Format as (00) 00000-0000, or (00) 0000-0000 for landlines"""
    digits = only_digits(phone)[:11]
    if len(digits) <= 10:
        return re.sub(r"(\d{2})(\d{4})(\d{0,4})", r"(\1) \2-\3", digits)
    return re.sub(r"(\d{2})(\d{5})(\d{0,4})", r"(\1) \2-\3", digits)


def is_valid_cpf(cpf: Optional[str]) -> bool:
    """Check the two CPF verification digits"""
    digits = only_digits(cpf)
    if len(digits) != 11 or digits == digits[0] * 11:
        return False

    for position in (9, 10):
        total = sum(int(digits[i]) * (position + 1 - i) for i in range(position))
        check = (total * 10) % 11
        if check == 10:
            check = 0
        if check != int(digits[position]):
            return False
    return True


def is_valid_cnpj(cnpj: Optional[str]) -> bool:
    """Check the two CNPJ verification digits"""
    digits = only_digits(cnpj)
    if len(digits) != 14 or digits == digits[0] * 14:
        return False

    def check_digit(base: str, weights: list[int]) -> int:
        remainder = sum(int(d) * w for d, w in zip(base, weights)) % 11
        return 0 if remainder < 2 else 11 - remainder

    first = check_digit(digits[:12], [5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2])
    second = check_digit(digits[:12] + str(first), [6, 5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2])
    return digits[12:] == f"{first}{second}"


def validate_cpf_cnpj(value: Optional[str]) -> Optional[str]:
    """
    Validate a CPF (11 digits) or CNPJ (14 digits) and return the digits only.

    Raises:
        ValueError: If the document is invalid
    """
    if not value:
        return value

    digits = only_digits(value)
    if len(digits) == 11:
        if not is_valid_cpf(digits):
            raise ValueError("CPF inválido")
        return digits
    if len(digits) == 14:
        if not is_valid_cnpj(digits):
            raise ValueError("CNPJ inválido")
        return digits
    raise ValueError("Documento deve ser um CPF ou CNPJ")


def validate_email(email: Optional[str]) -> Optional[str]:
    """Validate email format and normalize to lowercase"""
    if not email:
        return email

    email = email.strip().lower()
    if not re.match(r"^[^@\s]+@[^@\s]+\.[^@\s]+$", email):
        raise ValueError("E-mail inválido")
    return email


def validate_hex_color(color: Optional[str]) -> Optional[str]:
    if not color:
        return color
    if not re.match(r"^#[0-9a-fA-F]{6}$", color):
        raise ValueError("Cor deve estar no formato #RRGGBB")
    return color.upper()


def validate_time_hhmm(value: Optional[str]) -> Optional[str]:
    """Validate HH:MM (also accepts HH:MM:SS, truncated)"""
    if not value:
        return value
    match = re.match(r"^([01]\d|2[0-3]):([0-5]\d)(:[0-5]\d)?$", value)
    if not match:
        raise ValueError("Horário deve estar no formato HH:MM")
    return f"{match.group(1)}:{match.group(2)}"


def validate_subdomain(value: Optional[str]) -> Optional[str]:
    """Lowercase DNS label of 3 to 63 characters"""
    if not value:
        return value
    value = value.strip().lower()
    if not re.match(r"^[a-z0-9]([a-z0-9-]{1,61}[a-z0-9])$", value):
        raise ValueError("Subdomínio inválido")
    return value


def validate_domain(value: Optional[str]) -> Optional[str]:
    if not value:
        return value
    value = value.strip().lower()
    value = re.sub(r"^https?://", "", value).rstrip("/")
    domain_pattern = r"^[a-z0-9]([a-z0-9\-]{0,61}[a-z0-9])?(\.[a-z0-9]([a-z0-9\-]{0,61}[a-z0-9])?)+$"
    if not re.match(domain_pattern, value):
        raise ValueError("Domínio inválido")
    return value
