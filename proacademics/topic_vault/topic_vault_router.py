import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from motor.motor_asyncio import AsyncIOMotorDatabase

from proacademics.database import get_db
from proacademics.errors import ImportRowError
from proacademics.http_utils import set_no_cache
from proacademics.topic_vault import topic_vault_service as service
from proacademics.topic_vault.topic_vault_schemas import TopicCreate, TopicUpdate, TopicVaultImport

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Admin Topic Vault"])


@router.get("/topic-vault")
async def list_topics(
    response: Response,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    subject: Optional[str] = "all",
    program: Optional[str] = "all",
    status: Optional[str] = "all",
    teacher: Optional[str] = "all",
    type: Optional[str] = "all",
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    try:
        result = await service.get_all_topics(db, page, limit, search, subject, program, status, teacher, type)
        set_no_cache(response)
        return result
    except Exception as e:
        logger.exception("Error fetching topic vaults: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch topic vaults")


@router.post("/topic-vault", status_code=201)
async def create_topic(data: TopicCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    if not data.topicName or not data.subject or not data.program:
        raise HTTPException(status_code=400, detail="Missing required fields: topicName, subject, program")

    topic = await service.create_topic(db, data.dict())
    return {"success": True, "topic": topic}


@router.get("/topic-vault/stats")
async def topic_vault_stats(response: Response, db: AsyncIOMotorDatabase = Depends(get_db)):
    stats = await service.get_topic_vault_stats(db)
    set_no_cache(response)
    return stats


@router.get("/topic-vault/filters/subjects")
async def topic_subjects(db: AsyncIOMotorDatabase = Depends(get_db)):
    return {"subjects": await service.get_unique_subjects(db)}


@router.get("/topic-vault/filters/programs")
async def topic_programs(db: AsyncIOMotorDatabase = Depends(get_db)):
    return {"programs": await service.get_unique_programs(db)}


@router.get("/topic-vault/filters/teachers")
async def topic_teachers(db: AsyncIOMotorDatabase = Depends(get_db)):
    return {"teachers": await service.get_unique_teachers(db)}


@router.post("/topic-vault/import", status_code=201)
async def import_topic_vaults(data: TopicVaultImport, db: AsyncIOMotorDatabase = Depends(get_db)):
    """Flat video rows, grouped into topics by (topic, subject, program)"""
    if not data.topicVaults:
        raise HTTPException(status_code=400, detail="No topic vault data provided")

    try:
        topics, count = await service.import_topic_vaults(db, data.topicVaults)
    except ImportRowError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Error importing topic vaults: %s", e)
        raise HTTPException(status_code=500, detail="Failed to import topic vaults")

    return {
        "message": f"Successfully imported {count} topic vaults",
        "topics": topics,
        "count": count,
    }


@router.delete("/topic-vault/delete-all")
async def delete_all_topics(db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.delete_all_topics(db)


@router.get("/topic-vault/debug")
async def topic_vault_debug(db: AsyncIOMotorDatabase = Depends(get_db)):
    return {
        "success": True,
        "message": "Debug data retrieved successfully",
        "data": await service.debug_summary(db),
    }


@router.get("/topic-vault/{topic_id}")
async def get_topic(topic_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    topic = await service.get_topic_by_id(db, topic_id)
    if not topic:
        raise HTTPException(status_code=404, detail="Topic vault not found")
    return {"topic": topic}


@router.put("/topic-vault/{topic_id}")
async def update_topic(topic_id: str, data: TopicUpdate, db: AsyncIOMotorDatabase = Depends(get_db)):
    topic = await service.update_topic(db, topic_id, data.dict())
    if not topic:
        raise HTTPException(status_code=404, detail="Topic vault not found")
    return {"topic": topic}


@router.delete("/topic-vault/{topic_id}")
async def delete_topic(topic_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    if not await service.delete_topic(db, topic_id):
        raise HTTPException(status_code=404, detail="Topic vault not found")
    return {"message": "Topic vault deleted successfully"}
