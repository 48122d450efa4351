from .resolver import (
    DATA_LOCK_DATE,
    MISSIONS_PER_ROLE,
    CatalogResolver,
    ResourceBundle,
    derive_tuning_tags,
    validate_role_order,
)

__all__ = [
    "DATA_LOCK_DATE",
    "MISSIONS_PER_ROLE",
    "CatalogResolver",
    "ResourceBundle",
    "derive_tuning_tags",
    "validate_role_order",
]
