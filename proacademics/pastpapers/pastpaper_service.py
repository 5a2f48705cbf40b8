"""
Past papers: exam sittings holding one or more papers, each with video questions
"""

import logging
from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from proacademics.database import build_list_query, is_active_filter, paginate, serialize_mongo, to_object_id

logger = logging.getLogger(__name__)

PASTPAPER_SEARCH_FIELDS = ["paperName", "board", "subject"]
QUESTION_FIELDS = [
    "questionNumber", "topic", "questionName", "questionDescription",
    "duration", "teacher", "videoEmbedLink",
]


def _with_id(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return None
    doc = serialize_mongo(doc)
    doc["id"] = doc["_id"]
    return doc


def validate_papers(papers: List[dict]):
    for paper in papers:
        if not paper.get("name") or not paper.get("questionPaperUrl") or not paper.get("markSchemeUrl"):
            raise HTTPException(
                status_code=400,
                detail="Each paper must have name, question paper URL, and mark scheme URL",
            )


def _paper_docs(papers: List[dict], keep_questions: bool) -> List[dict]:
    return [
        {
            "name": paper["name"],
            "questionPaperUrl": paper["questionPaperUrl"],
            "markSchemeUrl": paper["markSchemeUrl"],
            "questions": (paper.get("questions") or []) if keep_questions else [],
        }
        for paper in papers
    ]


# ==================== PAST PAPER CRUD ====================

async def get_all_pastpapers(
    db: AsyncIOMotorDatabase,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    subject: Optional[str] = None,
    board: Optional[str] = None,
    year: Optional[str] = None,
    status: Optional[str] = None,
) -> dict:
    query = build_list_query(search, PASTPAPER_SEARCH_FIELDS, {
        "subject": subject,
        "board": board,
        "status": status,
    })
    if is_active_filter(year):
        query["year"] = int(year)

    papers, total, total_pages = await paginate(db.pastpapers, query, page, limit)
    for paper in papers:
        paper["id"] = paper["_id"]

    return {
        "success": True,
        "pastPapers": papers,
        "total": total,
        "totalPages": total_pages,
        "currentPage": page,
    }


async def create_pastpaper(db: AsyncIOMotorDatabase, data: dict) -> dict:
    papers = data.get("papers") or []
    validate_papers(papers)

    now = datetime.utcnow()
    doc = {
        "paperName": data["paperName"],
        "board": data["board"],
        "year": int(data["year"]),
        "subject": data["subject"],
        "program": data["program"],
        "status": data["status"],
        "papers": _paper_docs(papers, keep_questions=False),
        "createdAt": now,
        "updatedAt": now,
    }
    result = await db.pastpapers.insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info("Created past paper %s %s (%d papers)", doc["board"], doc["paperName"], len(doc["papers"]))
    return _with_id(doc)


async def delete_all_pastpapers(db: AsyncIOMotorDatabase) -> int:
    result = await db.pastpapers.delete_many({})
    logger.warning("Deleted all past papers (%d)", result.deleted_count)
    return result.deleted_count


async def get_pastpaper_by_id(db: AsyncIOMotorDatabase, paper_id: str) -> Optional[dict]:
    oid = to_object_id(paper_id, "past paper ID")
    return _with_id(await db.pastpapers.find_one({"_id": oid}))


async def update_pastpaper(db: AsyncIOMotorDatabase, paper_id: str, data: dict) -> Optional[dict]:
    """Full replacement of the editable fields; questions travel inside papers"""
    oid = to_object_id(paper_id, "past paper ID")
    papers = data.get("papers") or []
    if not papers:
        raise HTTPException(status_code=400, detail="At least one paper is required")
    validate_papers(papers)

    updates = {
        "paperName": data["paperName"],
        "board": data["board"],
        "year": int(data["year"]),
        "subject": data["subject"],
        "program": data["program"],
        "status": data["status"],
        "papers": _paper_docs(papers, keep_questions=True),
        "updatedAt": datetime.utcnow(),
    }
    result = await db.pastpapers.update_one({"_id": oid}, {"$set": updates})
    if result.matched_count == 0:
        return None
    return _with_id(await db.pastpapers.find_one({"_id": oid}))


async def delete_pastpaper(db: AsyncIOMotorDatabase, paper_id: str) -> bool:
    oid = to_object_id(paper_id, "past paper ID")
    result = await db.pastpapers.delete_one({"_id": oid})
    return result.deleted_count > 0


# ==================== QUESTIONS ====================

async def _load_paper(db: AsyncIOMotorDatabase, paper_id: str, paper_index: int):
    """Returns (ObjectId, papers list) or raises 404"""
    oid = to_object_id(paper_id, "past paper ID")
    past_paper = await db.pastpapers.find_one({"_id": oid})
    if not past_paper:
        raise HTTPException(status_code=404, detail="Past paper not found")

    papers = past_paper.get("papers") or []
    if paper_index < 0 or paper_index >= len(papers):
        raise HTTPException(status_code=404, detail="Paper not found at specified index")
    return oid, papers


async def _save_papers(db: AsyncIOMotorDatabase, oid: ObjectId, papers: List[dict]):
    await db.pastpapers.update_one(
        {"_id": oid},
        {"$set": {"papers": papers, "updatedAt": datetime.utcnow()}},
    )


async def get_questions(db: AsyncIOMotorDatabase, paper_id: str, paper_index: int = 0) -> List[dict]:
    _, papers = await _load_paper(db, paper_id, paper_index)
    return papers[paper_index].get("questions") or []


async def add_question(db: AsyncIOMotorDatabase, paper_id: str, paper_index: int, data: dict) -> dict:
    oid, papers = await _load_paper(db, paper_id, paper_index)

    now = datetime.utcnow().isoformat()
    question = {field: data[field] for field in QUESTION_FIELDS}
    question["id"] = str(ObjectId())
    question["questionNumber"] = int(data["questionNumber"])
    question["createdAt"] = now
    question["updatedAt"] = now

    papers[paper_index].setdefault("questions", []).append(question)
    await _save_papers(db, oid, papers)
    return question


async def update_question(
    db: AsyncIOMotorDatabase, paper_id: str, paper_index: int, question_id: str, data: dict
) -> bool:
    oid, papers = await _load_paper(db, paper_id, paper_index)

    for question in papers[paper_index].get("questions") or []:
        if question.get("id") == question_id:
            for field in QUESTION_FIELDS:
                if data.get(field) is not None:
                    question[field] = data[field]
            if data.get("questionNumber") is not None:
                question["questionNumber"] = int(data["questionNumber"])
            question["updatedAt"] = datetime.utcnow().isoformat()
            await _save_papers(db, oid, papers)
            return True
    return False


async def delete_question(db: AsyncIOMotorDatabase, paper_id: str, paper_index: int, question_id: str) -> bool:
    oid, papers = await _load_paper(db, paper_id, paper_index)

    questions = papers[paper_index].get("questions") or []
    remaining = [q for q in questions if q.get("id") != question_id]
    if len(remaining) == len(questions):
        return False

    papers[paper_index]["questions"] = remaining
    await _save_papers(db, oid, papers)
    return True
