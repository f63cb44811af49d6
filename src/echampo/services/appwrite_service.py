from datetime import date
import logging
from typing import Any, Dict, List, Optional

from appwrite.client import Client
from appwrite.exception import AppwriteException
from appwrite.id import ID
from appwrite.query import Query
from appwrite.services.databases import Databases

from echampo.config.settings import settings
from echampo.core.grades import general_average, subject_averages, validate_grade_input
from echampo.core.models import Grade, RECURRENCES, ScheduleEntry, Subject, Todo, TodoFormatting, WEEK_TYPES
from echampo.core.palette import DEFAULT_SUBJECTS, validate_color, validate_subject_name
from echampo.core.timetable import reschedule, validate_day, validate_entry_times
from echampo.core.todos import sort_todos, validate_formatting, validate_priority, validate_todo_title


logger = logging.getLogger(__name__)

ENTITIES = ("subjects", "schedule_entries", "grades", "todos")
PAGE_SIZE = 100


class AppwriteServiceError(Exception):
    pass


class AppwriteService:
    def __init__(
        self,
        endpoint: str,
        project_id: str,
        api_key: str,
        database_id: str,
        subjects_collection_id: str,
        schedule_collection_id: str,
        grades_collection_id: str,
        todos_collection_id: str,
        db: Optional[Databases] = None,
    ) -> None:
        if not endpoint:
            raise AppwriteServiceError("Missing APPWRITE_ENDPOINT in environment")
        if not project_id:
            raise AppwriteServiceError("Missing APPWRITE_PROJECT_ID in environment")
        if not api_key:
            raise AppwriteServiceError("Missing APPWRITE_API_KEY in environment")
        if not database_id:
            raise AppwriteServiceError("Missing APPWRITE_DATABASE_ID in environment")

        self.database_id = database_id
        self.collections = {
            "subjects": subjects_collection_id,
            "schedule_entries": schedule_collection_id,
            "grades": grades_collection_id,
            "todos": todos_collection_id,
        }

        if db is None:
            client = Client()
            client.set_endpoint(endpoint.rstrip("/"))
            client.set_project(project_id)
            client.set_key(api_key)
            db = Databases(client)

        self.db = db

    @classmethod
    def from_settings(cls) -> "AppwriteService":
        return cls(
            endpoint=settings.appwrite_endpoint,
            project_id=settings.appwrite_project_id,
            api_key=settings.appwrite_api_key,
            database_id=settings.appwrite_database_id,
            subjects_collection_id=settings.appwrite_subjects_collection_id,
            schedule_collection_id=settings.appwrite_schedule_collection_id,
            grades_collection_id=settings.appwrite_grades_collection_id,
            todos_collection_id=settings.appwrite_todos_collection_id,
        )

    def _collection(self, entity: str) -> str:
        try:
            return self.collections[entity]
        except KeyError as exc:
            raise AppwriteServiceError(f"Unknown entity: {entity}") from exc

    # Persistence primitives, always scoped to the owner.

    def select(
        self,
        entity: str,
        uid: str,
        filters: Optional[Dict[str, Any]] = None,
        order: Optional[str] = None,
        descending: bool = False,
    ) -> List[Dict]:
        queries = [Query.equal("user_id", [uid])]
        for key, value in (filters or {}).items():
            queries.append(Query.equal(key, value if isinstance(value, list) else [value]))
        if order:
            queries.append(Query.order_desc(order) if descending else Query.order_asc(order))
        queries.append(Query.limit(PAGE_SIZE))

        documents: List[Dict] = []
        while True:
            page_queries = list(queries)
            if documents:
                page_queries.append(Query.cursor_after(documents[-1]["$id"]))
            try:
                result = self.db.list_documents(self.database_id, self._collection(entity), queries=page_queries)
            except AppwriteException as exc:
                logger.warning("select on %s failed: %s", entity, exc)
                raise AppwriteServiceError(str(exc)) from exc
            page = list(result.get("documents", []))
            documents.extend(page)
            # A short page is the last one.
            if len(page) < PAGE_SIZE:
                return documents

    def insert(self, entity: str, uid: str, record: Dict[str, Any]) -> Dict:
        data = {**record, "user_id": uid}
        try:
            doc = self.db.create_document(self.database_id, self._collection(entity), ID.unique(), data)
        except AppwriteException as exc:
            logger.warning("insert into %s failed: %s", entity, exc)
            raise AppwriteServiceError(str(exc)) from exc
        logger.info("Inserted %s %s for user %s", entity, doc.get("$id"), uid)
        return doc

    def update(self, entity: str, uid: str, document_id: str, partial: Dict[str, Any]) -> Dict:
        if not self._owned(entity, uid, document_id):
            raise AppwriteServiceError(f"{self._label(entity)} not found.")
        try:
            doc = self.db.update_document(self.database_id, self._collection(entity), document_id, partial)
        except AppwriteException as exc:
            logger.warning("update of %s %s failed: %s", entity, document_id, exc)
            raise AppwriteServiceError(str(exc)) from exc
        logger.info("Updated %s %s (%s)", entity, document_id, ", ".join(sorted(partial)))
        return doc

    def delete(self, entity: str, uid: str, document_id: str) -> None:
        if not self._owned(entity, uid, document_id):
            return
        try:
            self.db.delete_document(self.database_id, self._collection(entity), document_id)
        except AppwriteException as exc:
            logger.warning("delete of %s %s failed: %s", entity, document_id, exc)
            raise AppwriteServiceError(str(exc)) from exc
        logger.info("Deleted %s %s", entity, document_id)

    def _owned(self, entity: str, uid: str, document_id: str) -> bool:
        docs = self.select(entity, uid, {"$id": document_id})
        return bool(docs)

    def _find_one(self, entity: str, uid: str, document_id: str) -> Optional[Dict]:
        docs = self.select(entity, uid, {"$id": document_id})
        if not docs:
            return None
        return docs[0]

    @staticmethod
    def _label(entity: str) -> str:
        return {
            "subjects": "Subject",
            "schedule_entries": "Schedule entry",
            "grades": "Grade",
            "todos": "Todo",
        }.get(entity, entity)

    # Subjects

    def list_subjects(self, uid: str, order: str = "name") -> List[Subject]:
        return [Subject.from_document(doc) for doc in self.select("subjects", uid, order=order)]

    def create_subject(
        self,
        uid: str,
        *,
        name: str,
        color: str,
        coefficient: float = 1.0,
        is_default: bool = False,
    ) -> Subject:
        subject = Subject(
            id="",
            user_id=uid,
            name=validate_subject_name(name),
            color=validate_color(color),
            coefficient=coefficient,
            is_default=is_default,
        )
        doc = self.insert("subjects", uid, subject.to_document())
        return Subject.from_document(doc)

    def update_subject(
        self,
        uid: str,
        subject_id: str,
        *,
        name: Optional[str] = None,
        color: Optional[str] = None,
        coefficient: Optional[float] = None,
    ) -> Subject:
        partial: Dict[str, Any] = {}
        if name is not None:
            partial["name"] = validate_subject_name(name)
        if color is not None:
            partial["color"] = validate_color(color)
        if coefficient is not None:
            partial["subject_coefficient"] = coefficient
        if not partial:
            raise AppwriteServiceError("Nothing to update.")
        doc = self.update("subjects", uid, subject_id, partial)
        return Subject.from_document(doc)

    def delete_subject(self, uid: str, subject_id: str) -> None:
        if not self._owned("subjects", uid, subject_id):
            return
        for entity in ("schedule_entries", "grades"):
            for doc in self.select(entity, uid, {"subject_id": subject_id}):
                self.delete(entity, uid, doc["$id"])
        self.delete("subjects", uid, subject_id)
        logger.info("Deleted subject %s with its schedule entries and grades", subject_id)

    def ensure_default_subjects(self, uid: str) -> List[Subject]:
        if self.select("subjects", uid):
            return []
        created = [
            self.create_subject(
                uid,
                name=default.name,
                color=default.color,
                coefficient=default.coefficient,
                is_default=True,
            )
            for default in DEFAULT_SUBJECTS
        ]
        logger.info("Seeded %d default subjects for user %s", len(created), uid)
        return created

    # Schedule entries

    def list_schedule_entries(self, uid: str) -> List[ScheduleEntry]:
        docs = self.select("schedule_entries", uid, order="start_time")
        return [ScheduleEntry.from_document(doc) for doc in docs]

    def create_schedule_entry(
        self,
        uid: str,
        *,
        subject_id: str,
        day_of_week: int,
        start_time: str,
        end_time: str,
        week_type: str = "both",
        recurrence: str = "none",
    ) -> ScheduleEntry:
        if week_type not in WEEK_TYPES:
            raise ValueError(f"Unsupported week type: {week_type}. Use {', '.join(WEEK_TYPES)}.")
        if recurrence not in RECURRENCES:
            raise ValueError(f"Unsupported recurrence: {recurrence}. Use {', '.join(RECURRENCES)}.")
        start, end = validate_entry_times(start_time, end_time)
        if not self._owned("subjects", uid, subject_id):
            raise AppwriteServiceError("Subject not found for schedule entry.")

        entry = ScheduleEntry(
            id="",
            user_id=uid,
            subject_id=subject_id,
            day_of_week=validate_day(day_of_week),
            start_time=start,
            end_time=end,
            week_type=week_type,
            recurrence=recurrence,
        )
        doc = self.insert("schedule_entries", uid, entry.to_document())
        return ScheduleEntry.from_document(doc)

    def move_schedule_entry(self, uid: str, entry_id: str, new_day: int, new_hour: int) -> ScheduleEntry:
        doc = self._find_one("schedule_entries", uid, entry_id)
        if not doc:
            raise AppwriteServiceError("Schedule entry not found.")
        moved = reschedule(ScheduleEntry.from_document(doc), validate_day(new_day), new_hour)
        self.update(
            "schedule_entries",
            uid,
            entry_id,
            {
                "day_of_week": moved.day_of_week,
                "start_time": moved.start_time,
                "end_time": moved.end_time,
            },
        )
        logger.info("Moved schedule entry %s to day %d at %s", entry_id, moved.day_of_week, moved.start_time)
        return moved

    def delete_schedule_entry(self, uid: str, entry_id: str) -> None:
        self.delete("schedule_entries", uid, entry_id)

    # Grades

    def list_grades(self, uid: str) -> List[Grade]:
        docs = self.select("grades", uid, order="date", descending=True)
        return [Grade.from_document(doc) for doc in docs]

    def create_grade(
        self,
        uid: str,
        *,
        subject_id: str,
        value: float,
        grade_max: float = 20.0,
        coefficient: float = 1.0,
        description: str = "",
        graded_on: Optional[date] = None,
    ) -> Grade:
        validate_grade_input(value, grade_max, coefficient)
        if not self._owned("subjects", uid, subject_id):
            raise AppwriteServiceError("Subject not found for grade input.")

        grade = Grade(
            id="",
            user_id=uid,
            subject_id=subject_id,
            value=float(value),
            max=float(grade_max),
            coefficient=float(coefficient),
            description=description.strip() or None,
            date=graded_on or date.today(),
        )
        doc = self.insert("grades", uid, grade.to_document())
        return Grade.from_document(doc)

    def delete_grade(self, uid: str, grade_id: str) -> None:
        self.delete("grades", uid, grade_id)

    def get_averages(self, uid: str) -> Dict[str, Any]:
        subjects = self.list_subjects(uid)
        grades = self.list_grades(uid)
        return {
            "subjects": subject_averages(subjects, grades),
            "general": general_average(subjects, grades),
        }

    # Todos

    def list_todos(self, uid: str) -> List[Todo]:
        docs = self.select("todos", uid)
        return sort_todos(Todo.from_document(doc) for doc in docs)

    def create_todo(
        self,
        uid: str,
        *,
        title: str,
        priority: str = "medium",
        due_date: Optional[date] = None,
    ) -> Todo:
        todo = Todo(
            id="",
            user_id=uid,
            title=validate_todo_title(title),
            completed=False,
            priority=validate_priority(priority),
            due_date=due_date,
        )
        doc = self.insert("todos", uid, todo.to_document())
        return Todo.from_document(doc)

    def toggle_todo(self, uid: str, todo_id: str) -> Todo:
        doc = self._find_one("todos", uid, todo_id)
        if not doc:
            raise AppwriteServiceError("Todo not found.")
        current = Todo.from_document(doc)
        updated = self.update("todos", uid, todo_id, {"completed": not current.completed})
        return Todo.from_document(updated)

    def set_todo_completed(self, uid: str, todo_id: str, completed: bool) -> Todo:
        updated = self.update("todos", uid, todo_id, {"completed": completed})
        return Todo.from_document(updated)

    def edit_todo(self, uid: str, todo_id: str, *, title: str, formatting: TodoFormatting) -> Todo:
        todo = Todo(
            id=todo_id,
            user_id=uid,
            title=validate_todo_title(title),
            formatting=validate_formatting(formatting),
        )
        document = todo.to_document()
        updated = self.update(
            "todos",
            uid,
            todo_id,
            {"title": document["title"], "formatting": document["formatting"]},
        )
        return Todo.from_document(updated)

    def delete_todo(self, uid: str, todo_id: str) -> None:
        self.delete("todos", uid, todo_id)
