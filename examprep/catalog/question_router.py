from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from examprep.catalog.models import QuestionCreate, QuestionUpdate
from examprep.catalog.database import QUESTION, create_child, list_children, update_node, delete_node
from examprep.core.database import get_db
from examprep.core.security import UserContext, admin_auth

router = APIRouter(tags=["Questions"])


@router.post("", status_code=201)
async def create_question(
    payload: QuestionCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    question = await create_child(db, QUESTION, payload.test_id, payload.dict())
    return {"success": True, "message": "Question added", "question": question}


@router.get("/{test_id}")
async def list_questions(
    test_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    questions = await list_children(db, QUESTION, test_id)
    return {"success": True, "questions": questions, "count": len(questions)}


@router.put("/{question_id}")
async def update_question(
    question_id: str,
    payload: QuestionUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    question = await update_node(db, QUESTION, question_id, payload.dict(exclude_unset=True))
    return {"success": True, "message": "Question updated", "question": question}


@router.delete("/{question_id}")
async def delete_question(
    question_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: UserContext = Depends(admin_auth)
):
    await delete_node(db, QUESTION, question_id)
    return {"success": True, "message": "Question deleted"}
