"""Shared pydantic helpers for request validation."""

from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError


def validate_payload(dto_cls, data):
    """Validate ``data`` against ``dto_cls`` or raise a ``ValidationError``.

    The pydantic error list is flattened into one readable message such as
    ``"items.0.quantity: Input should be greater than 0"``.
    """
    try:
        return dto_cls.model_validate(data)
    except PydanticValidationError as e:
        parts = []
        for err in e.errors():
            loc = ".".join(str(x) for x in err.get("loc", ()))
            parts.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", ""))
        raise ValidationError("; ".join(parts) or "Invalid payload") from e
