"""Brazilian taxpayer ids: CPF (individuals, 11 digits) and CNPJ (companies, 14)."""

import re

_NON_DIGITS = re.compile(r"\D")

_CNPJ_WEIGHTS_1 = (5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2)
_CNPJ_WEIGHTS_2 = (6,) + _CNPJ_WEIGHTS_1


def digits_only(value: str) -> str:
    return _NON_DIGITS.sub("", value)


def _is_repeated(digits: str) -> bool:
    return len(set(digits)) == 1


def _cpf_digit(digits: str) -> int:
    weight = len(digits) + 1
    total = sum(int(d) * (weight - i) for i, d in enumerate(digits))
    remainder = (total * 10) % 11
    return 0 if remainder == 10 else remainder


def _cnpj_digit(digits: str, weights: tuple[int, ...]) -> int:
    remainder = sum(int(d) * w for d, w in zip(digits, weights)) % 11
    return 0 if remainder < 2 else 11 - remainder


def is_valid_cpf(value: str) -> bool:
    digits = digits_only(value)
    if len(digits) != 11 or _is_repeated(digits):
        return False
    first = _cpf_digit(digits[:9])
    second = _cpf_digit(digits[:10])
    return digits[9:] == f"{first}{second}"


def is_valid_cnpj(value: str) -> bool:
    digits = digits_only(value)
    if len(digits) != 14 or _is_repeated(digits):
        return False
    first = _cnpj_digit(digits[:12], _CNPJ_WEIGHTS_1)
    second = _cnpj_digit(digits[:13], _CNPJ_WEIGHTS_2)
    return digits[12:] == f"{first}{second}"


def has_document_shape(value: str) -> bool:
    """11 or 14 digits, not all the same digit. Punctuation is ignored."""
    digits = digits_only(value)
    return len(digits) in (11, 14) and not _is_repeated(digits)


def is_valid_document(value: str) -> bool:
    """Full check-digit validation of a CPF or CNPJ."""
    digits = digits_only(value)
    if len(digits) == 11:
        return is_valid_cpf(digits)
    if len(digits) == 14:
        return is_valid_cnpj(digits)
    return False
