#!/usr/bin/env python3
"""
Database initialization script.
Run this to create the students and users tables.
"""

import logging
import sys

from sqlmodel import Session, text

from student_records.configs.database import engine, init_db
from student_records.configs.logging_config import setup_logging
from student_records.services import user_service

logger = logging.getLogger(__name__)


def main():
    """Initialize the database schema."""
    setup_logging()
    try:
        logger.info(f"Testing database connection at {engine.url.render_as_string(hide_password=True)}")
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))

        init_db()
        logger.info("Database schema created successfully")
        with Session(engine) as db:
            if user_service.bootstrap_admin(db):
                logger.info("Initial admin account created")
    except Exception:
        logger.exception("Error initializing database")
        sys.exit(1)

if __name__ == "__main__":
    main()
