"""
Maintenance API endpoints used by the admin dashboard: seeding, sample data,
destructive cleanup and database structure information.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.api.envelope import success
from backend.persistence.db import CATALOG_TABLES, Database, get_database, get_db
from backend.services.cleanup_service import CleanupService
from backend.services.seed_service import SeedService
from backend.services.test_data_service import TestDataService
from backend.utils.verbosity_logger import get_logger

logger = get_logger("backend.api.maintenance")

router = APIRouter()


@router.post("/seed")
async def seed_database(database: Database = Depends(get_database)):
    """Create the reference devices, problems and steps that are missing"""
    logger.info("Seeding database via API")
    with database.transaction() as db:
        created = SeedService(db).seed()
    return success(created, "Database seeded successfully")


@router.post("/test-data")
async def create_test_data(database: Database = Depends(get_database)):
    """Insert sample problems, steps and sessions in one transaction"""
    with database.transaction() as db:
        created = TestDataService(db).create()
    return success(created, "Test data created successfully")


@router.post("/cleanup/tv-interfaces")
async def cleanup_tv_interfaces(database: Database = Depends(get_database)):
    """Replace every TV interface with one default home screen per active device"""
    with database.transaction() as db:
        result = CleanupService(db).reset_tv_interfaces()
    return success(result, "TV interfaces reset to defaults")


@router.post("/cleanup/clear-all")
async def clear_all_data(
    database: Database = Depends(get_database), db: Session = Depends(get_db)
):
    """Delete every catalog row, children first"""
    logger.warning("Clearing all catalog data")
    result = CleanupService(db).clear_all(database)
    return success(result, "All data cleared from database successfully")


@router.get("/db-info")
async def database_info(database: Database = Depends(get_database)):
    """Tables, foreign keys and catalog row counts"""
    row_counts = database.row_counts(CATALOG_TABLES)
    data = {
        "dialect": database.dialect,
        "tables": database.table_names(),
        "foreignKeys": database.foreign_keys(),
        "rowCounts": row_counts,
        "isEmpty": all(count in (0, "N/A") for count in row_counts.values()),
    }
    return success(data, "Database structure information retrieved successfully")


@router.get("/db-info/stats")
async def database_stats(database: Database = Depends(get_database)):
    """Per-table row statistics and the database size"""
    return success(database.get_stats(), "Database statistics retrieved successfully")
