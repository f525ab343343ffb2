"""Product domain constants.

Status choices and the publication state machine.  Self-transitions
are listed so that repeated publish / unpublish / discontinue calls are
idempotent; DISCONTINUED is terminal.
"""

from django.db import models


class ProductStatus(models.TextChoices):
    ACTIVE = "ACTIVE", "Active"
    INACTIVE = "INACTIVE", "Inactive"
    DISCONTINUED = "DISCONTINUED", "Discontinued"


VALID_TRANSITIONS: dict[str, set[str]] = {
    ProductStatus.INACTIVE: {
        ProductStatus.INACTIVE,
        ProductStatus.ACTIVE,
        ProductStatus.DISCONTINUED,
    },
    ProductStatus.ACTIVE: {
        ProductStatus.ACTIVE,
        ProductStatus.INACTIVE,
        ProductStatus.DISCONTINUED,
    },
    ProductStatus.DISCONTINUED: {ProductStatus.DISCONTINUED},
}

TERMINAL_STATES: set[str] = {ProductStatus.DISCONTINUED}

OUTBOX_TOPIC = "catalog.products"
