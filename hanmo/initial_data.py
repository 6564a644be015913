from sqlmodel import Session

from hanmo.core.db import engine, init_db
from hanmo.core.observability import get_logger, setup_structured_logging

logger = get_logger(__name__)


def init() -> None:
    with Session(engine) as session:
        init_db(session)


def main() -> None:
    setup_structured_logging()
    logger.info("Creating initial data")
    init()
    logger.info("Initial data created")


if __name__ == "__main__":
    main()
