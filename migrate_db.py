import logging

from database import engine, Base, init_db

logger = logging.getLogger(__name__)

def migrate_db(bind=None):
    bind = bind or engine
    logger.info("Migrating database at %s...", bind.url)
    # Creates any missing tables (transactions, budgets) and the budget unique index
    init_db(bind)
    logger.info("Migration complete! Tables: %s", ", ".join(sorted(Base.metadata.tables)))

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    migrate_db()
