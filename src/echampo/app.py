import datetime as dt
import logging
from typing import Any, Dict, List, Literal, Optional

from fastapi import FastAPI, Header, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from echampo.config.logging_config import configure_logging
from echampo.config.settings import settings
from echampo.core.grades import format_average
from echampo.core.models import Grade, ScheduleEntry, Subject, Todo, TodoFormatting
from echampo.core.palette import COLORS, DEFAULT_COLOR, HIGHLIGHT_COLORS
from echampo.core.timetable import DAYS, HOURS, build_grid, matches_week, validate_week_filter
from echampo.core.todos import split_todos, urgency
from echampo.services.appwrite_service import AppwriteService, AppwriteServiceError
from echampo.services.auth_service import AppwriteAuthService, AuthServiceError


configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Mon E-Champo API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allowed_origins),
    allow_origin_regex=settings.cors_allow_origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class AuthPayload(BaseModel):
    email: str
    password: str


class LogoutPayload(BaseModel):
    session_id: str
    session_secret: str


class SubjectPayload(BaseModel):
    name: str = Field(min_length=1)
    color: str = DEFAULT_COLOR
    coefficient: float = Field(default=1.0, ge=0)


class SubjectUpdatePayload(BaseModel):
    name: Optional[str] = None
    color: Optional[str] = None
    coefficient: Optional[float] = Field(default=None, ge=0)


class ScheduleEntryPayload(BaseModel):
    subject_id: str
    day_of_week: int = Field(ge=0, le=6)
    start_time: str
    end_time: str
    week_type: Literal["both", "week1", "week2"] = "both"
    recurrence: Literal["none", "weekly", "biweekly"] = "none"


class MovePayload(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    hour: int = Field(ge=0, le=23)


class GradePayload(BaseModel):
    subject_id: str
    value: float
    grade_max: float = Field(default=20.0, gt=0)
    coefficient: float = Field(default=1.0, ge=0)
    description: str = ""
    date: Optional[dt.date] = None


class FormattingPayload(BaseModel):
    bold: bool = False
    italic: bool = False
    underline: bool = False
    highlight: Optional[str] = None


class TodoPayload(BaseModel):
    title: str = Field(min_length=1)
    priority: Literal["low", "medium", "high"] = "medium"
    due_date: Optional[dt.date] = None


class TodoEditPayload(BaseModel):
    title: str = Field(min_length=1)
    formatting: FormattingPayload = Field(default_factory=FormattingPayload)


class TodoCompletionPayload(BaseModel):
    completed: bool


def _required_uid(x_user_id: Optional[str]) -> str:
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing x-user-id header")
    return x_user_id


def _bad_request(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _subject_out(subject: Subject) -> Dict[str, Any]:
    return {
        "id": subject.id,
        "name": subject.name,
        "color": subject.color,
        "coefficient": subject.coefficient,
        "is_default": subject.is_default,
    }


def _entry_out(entry: ScheduleEntry) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "subject_id": entry.subject_id,
        "day_of_week": entry.day_of_week,
        "start_time": entry.start_time,
        "end_time": entry.end_time,
        "week_type": entry.week_type,
        "recurrence": entry.recurrence,
    }


def _grade_out(grade: Grade) -> Dict[str, Any]:
    return {
        "id": grade.id,
        "subject_id": grade.subject_id,
        "value": grade.value,
        "max": grade.max,
        "coefficient": grade.coefficient,
        "description": grade.description,
        "date": grade.date.isoformat() if grade.date else None,
    }


def _todo_out(todo: Todo, today: dt.date) -> Dict[str, Any]:
    return {
        "id": todo.id,
        "title": todo.title,
        "completed": todo.completed,
        "priority": todo.priority,
        "due_date": todo.due_date.isoformat() if todo.due_date else None,
        "formatting": todo.formatting.to_dict(),
        "urgency": urgency(todo, today),
    }


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/auth/signup")
def sign_up(payload: AuthPayload) -> Dict:
    auth = AppwriteAuthService.from_settings()
    try:
        result = auth.sign_up(payload.email, payload.password)
        AppwriteService.from_settings().ensure_default_subjects(result.uid)
        return {
            "uid": result.uid,
            "email": result.email,
            "id_token": result.id_token,
            "refresh_token": result.refresh_token,
        }
    except AuthServiceError as exc:
        raise _bad_request(exc) from exc
    except AppwriteServiceError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


@app.post("/auth/login")
def login(payload: AuthPayload) -> Dict:
    auth = AppwriteAuthService.from_settings()
    try:
        result = auth.sign_in(payload.email, payload.password)
    except AuthServiceError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    try:
        AppwriteService.from_settings().ensure_default_subjects(result.uid)
    except AppwriteServiceError as exc:
        logger.warning("Default subject seeding failed for %s: %s", result.uid, exc)
    return {
        "uid": result.uid,
        "email": result.email,
        "id_token": result.id_token,
        "refresh_token": result.refresh_token,
    }


@app.post("/auth/logout")
def logout(payload: LogoutPayload) -> Dict[str, str]:
    auth = AppwriteAuthService.from_settings()
    try:
        auth.sign_out(payload.session_id, payload.session_secret)
        return {"status": "signed_out"}
    except AuthServiceError as exc:
        raise _bad_request(exc) from exc


@app.get("/palette")
def palette() -> Dict[str, Any]:
    return {
        "default": DEFAULT_COLOR,
        "colors": [{"name": c.name, "value": c.value} for c in COLORS],
        "highlights": [{"name": c.name, "value": c.value} for c in HIGHLIGHT_COLORS],
    }


@app.get("/subjects")
def list_subjects(x_user_id: Optional[str] = Header(default=None)) -> List[Dict]:
    uid = _required_uid(x_user_id)
    fs = AppwriteService.from_settings()
    try:
        return [_subject_out(s) for s in fs.list_subjects(uid)]
    except AppwriteServiceError as exc:
        raise _bad_request(exc) from exc


@app.post("/subjects")
def create_subject(payload: SubjectPayload, x_user_id: Optional[str] = Header(default=None)) -> Dict:
    uid = _required_uid(x_user_id)
    fs = AppwriteService.from_settings()
    try:
        return _subject_out(fs.create_subject(uid, **payload.model_dump()))
    except (ValueError, AppwriteServiceError) as exc:
        raise _bad_request(exc) from exc


@app.patch("/subjects/{subject_id}")
def update_subject(
    subject_id: str,
    payload: SubjectUpdatePayload,
    x_user_id: Optional[str] = Header(default=None),
) -> Dict:
    uid = _required_uid(x_user_id)
    fs = AppwriteService.from_settings()
    try:
        return _subject_out(fs.update_subject(uid, subject_id, **payload.model_dump()))
    except (ValueError, AppwriteServiceError) as exc:
        raise _bad_request(exc) from exc


@app.delete("/subjects/{subject_id}")
def delete_subject(subject_id: str, x_user_id: Optional[str] = Header(default=None)) -> Dict[str, str]:
    uid = _required_uid(x_user_id)
    fs = AppwriteService.from_settings()
    try:
        fs.delete_subject(uid, subject_id)
        return {"status": "deleted"}
    except AppwriteServiceError as exc:
        raise _bad_request(exc) from exc


@app.get("/schedule")
def list_schedule(
    week: str = Query(default="all"),
    x_user_id: Optional[str] = Header(default=None),
) -> List[Dict]:
    uid = _required_uid(x_user_id)
    fs = AppwriteService.from_settings()
    try:
        week_filter = validate_week_filter(week)
        entries = fs.list_schedule_entries(uid)
        return [_entry_out(e) for e in entries if matches_week(e, week_filter)]
    except (ValueError, AppwriteServiceError) as exc:
        raise _bad_request(exc) from exc


@app.get("/schedule/grid")
def schedule_grid(
    week: str = Query(default="all"),
    x_user_id: Optional[str] = Header(default=None),
) -> Dict[str, Any]:
    uid = _required_uid(x_user_id)
    fs = AppwriteService.from_settings()
    try:
        week_filter = validate_week_filter(week)
        rows = build_grid(fs.list_schedule_entries(uid), fs.list_subjects(uid), week_filter)
        return {
            "days": list(DAYS),
            "hours": list(HOURS),
            "week": week_filter,
            "rows": [[cell.to_dict() for cell in row] for row in rows],
        }
    except (ValueError, AppwriteServiceError) as exc:
        raise _bad_request(exc) from exc


@app.post("/schedule")
def create_schedule_entry(payload: ScheduleEntryPayload, x_user_id: Optional[str] = Header(default=None)) -> Dict:
    uid = _required_uid(x_user_id)
    fs = AppwriteService.from_settings()
    try:
        return _entry_out(fs.create_schedule_entry(uid, **payload.model_dump()))
    except (ValueError, AppwriteServiceError) as exc:
        raise _bad_request(exc) from exc


@app.patch("/schedule/{entry_id}/move")
def move_schedule_entry(
    entry_id: str,
    payload: MovePayload,
    x_user_id: Optional[str] = Header(default=None),
) -> Dict:
    uid = _required_uid(x_user_id)
    fs = AppwriteService.from_settings()
    try:
        return _entry_out(fs.move_schedule_entry(uid, entry_id, payload.day_of_week, payload.hour))
    except (ValueError, AppwriteServiceError) as exc:
        raise _bad_request(exc) from exc


@app.delete("/schedule/{entry_id}")
def delete_schedule_entry(entry_id: str, x_user_id: Optional[str] = Header(default=None)) -> Dict[str, str]:
    uid = _required_uid(x_user_id)
    fs = AppwriteService.from_settings()
    try:
        fs.delete_schedule_entry(uid, entry_id)
        return {"status": "deleted"}
    except AppwriteServiceError as exc:
        raise _bad_request(exc) from exc


@app.get("/grades")
def list_grades(x_user_id: Optional[str] = Header(default=None)) -> List[Dict]:
    uid = _required_uid(x_user_id)
    fs = AppwriteService.from_settings()
    try:
        return [_grade_out(g) for g in fs.list_grades(uid)]
    except AppwriteServiceError as exc:
        raise _bad_request(exc) from exc


@app.post("/grades")
def create_grade(payload: GradePayload, x_user_id: Optional[str] = Header(default=None)) -> Dict:
    uid = _required_uid(x_user_id)
    fs = AppwriteService.from_settings()
    try:
        grade = fs.create_grade(
            uid,
            subject_id=payload.subject_id,
            value=payload.value,
            grade_max=payload.grade_max,
            coefficient=payload.coefficient,
            description=payload.description,
            graded_on=payload.date,
        )
        return _grade_out(grade)
    except (ValueError, AppwriteServiceError) as exc:
        raise _bad_request(exc) from exc


@app.delete("/grades/{grade_id}")
def delete_grade(grade_id: str, x_user_id: Optional[str] = Header(default=None)) -> Dict[str, str]:
    uid = _required_uid(x_user_id)
    fs = AppwriteService.from_settings()
    try:
        fs.delete_grade(uid, grade_id)
        return {"status": "deleted"}
    except AppwriteServiceError as exc:
        raise _bad_request(exc) from exc


@app.get("/grades/averages")
def grade_averages(x_user_id: Optional[str] = Header(default=None)) -> Dict[str, Any]:
    uid = _required_uid(x_user_id)
    fs = AppwriteService.from_settings()
    try:
        averages = fs.get_averages(uid)
    except AppwriteServiceError as exc:
        raise _bad_request(exc) from exc
    return {
        "general": averages["general"],
        "general_display": format_average(averages["general"]),
        "subjects": {
            subject_id: {"average": value, "display": format_average(value)}
            for subject_id, value in averages["subjects"].items()
        },
    }


@app.get("/todos")
def list_todos(x_user_id: Optional[str] = Header(default=None)) -> Dict[str, Any]:
    uid = _required_uid(x_user_id)
    fs = AppwriteService.from_settings()
    try:
        todos = fs.list_todos(uid)
    except AppwriteServiceError as exc:
        raise _bad_request(exc) from exc
    today = dt.date.today()
    active, completed = split_todos(todos)
    return {
        "active": [_todo_out(t, today) for t in active],
        "completed": [_todo_out(t, today) for t in completed],
    }


@app.post("/todos")
def create_todo(payload: TodoPayload, x_user_id: Optional[str] = Header(default=None)) -> Dict:
    uid = _required_uid(x_user_id)
    fs = AppwriteService.from_settings()
    try:
        return _todo_out(fs.create_todo(uid, **payload.model_dump()), dt.date.today())
    except (ValueError, AppwriteServiceError) as exc:
        raise _bad_request(exc) from exc


@app.patch("/todos/{todo_id}")
def edit_todo(todo_id: str, payload: TodoEditPayload, x_user_id: Optional[str] = Header(default=None)) -> Dict:
    uid = _required_uid(x_user_id)
    fs = AppwriteService.from_settings()
    try:
        todo = fs.edit_todo(
            uid,
            todo_id,
            title=payload.title,
            formatting=TodoFormatting(**payload.formatting.model_dump()),
        )
        return _todo_out(todo, dt.date.today())
    except (ValueError, AppwriteServiceError) as exc:
        raise _bad_request(exc) from exc


@app.patch("/todos/{todo_id}/completed")
def set_todo_completed(
    todo_id: str,
    payload: TodoCompletionPayload,
    x_user_id: Optional[str] = Header(default=None),
) -> Dict:
    uid = _required_uid(x_user_id)
    fs = AppwriteService.from_settings()
    try:
        return _todo_out(fs.set_todo_completed(uid, todo_id, payload.completed), dt.date.today())
    except AppwriteServiceError as exc:
        raise _bad_request(exc) from exc


@app.post("/todos/{todo_id}/toggle")
def toggle_todo(todo_id: str, x_user_id: Optional[str] = Header(default=None)) -> Dict:
    uid = _required_uid(x_user_id)
    fs = AppwriteService.from_settings()
    try:
        return _todo_out(fs.toggle_todo(uid, todo_id), dt.date.today())
    except AppwriteServiceError as exc:
        raise _bad_request(exc) from exc


@app.delete("/todos/{todo_id}")
def delete_todo(todo_id: str, x_user_id: Optional[str] = Header(default=None)) -> Dict[str, str]:
    uid = _required_uid(x_user_id)
    fs = AppwriteService.from_settings()
    try:
        fs.delete_todo(uid, todo_id)
        return {"status": "deleted"}
    except AppwriteServiceError as exc:
        raise _bad_request(exc) from exc
