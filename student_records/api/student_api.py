from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlmodel import Session

from student_records.auth.auth_handler import require_staff
from student_records.configs.database import get_db
from student_records.schemas.student_schema import ActionResponse, StudentResponse, StudentSummary
from student_records.services import student_service
from student_records.services.student_validation import validate_student_payload

router = APIRouter(prefix="/students", tags=["students"], dependencies=[Depends(require_staff)])


@router.get("", response_model=List[StudentResponse])
def list_students(search: Optional[str] = Query(None), db: Session = Depends(get_db)):
    return student_service.list_students(db, search)


# registered before /{student_id} so "summary" is not taken for an id
@router.get("/summary", response_model=StudentSummary)
def student_summary(db: Session = Depends(get_db)):
    return student_service.summarize_students(db)


@router.get("/{student_id}", response_model=StudentResponse)
def get_student(student_id: int, db: Session = Depends(get_db)):
    return student_service.get_student(db, student_id)


@router.post("", response_model=ActionResponse, response_model_exclude_none=True)
def create_student(body: Dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    payload = validate_student_payload(body)
    student_id = student_service.create_student(db, payload)
    return ActionResponse(success=True, message="Student added successfully", id=student_id)


@router.put("/{student_id}", response_model=ActionResponse, response_model_exclude_none=True)
def update_student(student_id: int, body: Dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    payload = validate_student_payload(body)
    student_service.update_student(db, student_id, payload)
    return ActionResponse(success=True, message="Student updated successfully")


@router.delete("/{student_id}", response_model=ActionResponse, response_model_exclude_none=True)
def delete_student(student_id: int, db: Session = Depends(get_db)):
    student_service.delete_student(db, student_id)
    return ActionResponse(success=True, message="Student deleted successfully")
