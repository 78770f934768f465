#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Script to create the MongoDB indexes of the issue tracker collections.

Run with ``--rebuild`` to drop the existing indexes first.
"""

import argparse
import sys
import logging

from services.mongodb import (
    AUTHORITIES_COLLECTION,
    CONTRIBUTIONS_COLLECTION,
    ISSUES_COLLECTION,
    MongoDBService
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def main(argv=None):
    """Create MongoDB indexes."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--rebuild", action="store_true", help="drop existing indexes first")
    args = parser.parse_args(argv)

    mongodb_service = MongoDBService()
    try:
        logger.info("Starting MongoDB index creation...")

        health = mongodb_service.health_check()
        if health['status'] != 'healthy':
            logger.error(f"MongoDB is not healthy: {health}")
            sys.exit(1)

        logger.info(f"Connected to MongoDB - Database: {health['database']}")

        if args.rebuild:
            for collection in (ISSUES_COLLECTION, CONTRIBUTIONS_COLLECTION, AUTHORITIES_COLLECTION):
                mongodb_service.drop_indexes(collection)

        mongodb_service.create_indexes()

        logger.info("MongoDB indexes created successfully!")

    except Exception as e:
        logger.error(f"Failed to create indexes: {e}")
        sys.exit(1)
    finally:
        mongodb_service.close_connection()


if __name__ == "__main__":
    main()
