import logging

from discounts.registry import get_registry

logger = logging.getLogger(__name__)


def seed_discount_codes():
    created = get_registry().seed_defaults()
    if created:
        logger.info("Seeded %d default discount codes", created)
    return created
