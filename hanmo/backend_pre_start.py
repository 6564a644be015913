import logging

from sqlalchemy import Engine
from sqlmodel import Session, select
from tenacity import after_log, before_log, retry, stop_after_attempt, wait_fixed

from hanmo.core.db import engine
from hanmo.core.observability import get_logger, setup_structured_logging

logger = get_logger(__name__)

max_tries = 60 * 5  # 5 minutes
wait_seconds = 1


@retry(
    stop=stop_after_attempt(max_tries),
    wait=wait_fixed(wait_seconds),
    before=before_log(logger, logging.INFO),
    after=after_log(logger, logging.WARN),
    reraise=True,
)
def init(db_engine: Engine) -> None:
    with Session(db_engine) as session:
        # Try to create session to check if DB is awake
        session.exec(select(1))


def main() -> None:
    setup_structured_logging()
    logger.info("Initializing service")
    init(engine)
    logger.info("Service finished initializing")


if __name__ == "__main__":
    main()
