"""CLI job that creates the schema and seeds the food-type taxonomy."""

import logging

from eatery.core.db import apply_schema

logger = logging.getLogger(__name__)


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    apply_schema()
    logger.info("Database schema is up to date")


if __name__ == "__main__":
    main()
