import pytest
from bson import ObjectId
from pymongo.errors import PyMongoError

from conftest import sample_course_payload
from crud.enrollment import EnrollmentCRUD
from models.course import LessonProgress
from schemas.course import CourseCreate, CourseUpdate
from services.catalog import CatalogService
from services.progress_service import ProgressService
from utils.exceptions import AlreadyEnrolledError, ConflictError, NotEnrolledError, NotFoundError


async def make_course(db, teacher, **overrides):
    return await CatalogService(db).create_course(teacher, CourseCreate(**sample_course_payload(**overrides)))


def lesson_ids(course):
    return [lesson["_id"] for section in course["sections"] for lesson in section["lessons"]]


@pytest.mark.unit
class TestEnroll:

    @pytest.mark.asyncio
    async def test_enroll_snapshots_lessons_and_counts_once(self, db, teacher, student):
        course = await make_course(db, teacher)
        enrollment = await ProgressService(db).enroll(student, course["_id"])

        assert enrollment.total_lessons == 4
        assert enrollment.completed_lessons == 0
        assert enrollment.percent_complete == 0
        stored = await db.courses.find_one({"_id": course["_id"]})
        assert stored["students_enrolled"] == 1

    @pytest.mark.asyncio
    async def test_second_enroll_rejected(self, db, teacher, student):
        course = await make_course(db, teacher)
        service = ProgressService(db)
        await service.enroll(student, course["_id"])

        with pytest.raises(AlreadyEnrolledError):
            await service.enroll(student, course["_id"])

        stored = await db.courses.find_one({"_id": course["_id"]})
        assert stored["students_enrolled"] == 1
        assert await db.enrollments.count_documents({}) == 1

    @pytest.mark.asyncio
    async def test_unique_index_catches_a_racing_enroll(self, db, teacher, student):
        course = await make_course(db, teacher)
        service = ProgressService(db)
        await service.enroll(student, course["_id"])

        # Simulate losing the race: the pre-check sees nothing
        async def nothing(*args, **kwargs):
            return None
        service.enrollments.get_user_course_enrollment = nothing

        with pytest.raises(AlreadyEnrolledError):
            await service.enroll(student, course["_id"])
        stored = await db.courses.find_one({"_id": course["_id"]})
        assert stored["students_enrolled"] == 1

    @pytest.mark.asyncio
    async def test_missing_course(self, db, student):
        with pytest.raises(NotFoundError):
            await ProgressService(db).enroll(student, ObjectId())

    @pytest.mark.asyncio
    async def test_counter_failure_removes_enrollment(self, db, teacher, student):
        course = await make_course(db, teacher)
        db.courses.fail_next["update_one"] = PyMongoError("write failed")

        with pytest.raises(PyMongoError):
            await ProgressService(db).enroll(student, course["_id"])

        assert await db.enrollments.count_documents({}) == 0
        stored = await db.courses.find_one({"_id": course["_id"]})
        assert stored["students_enrolled"] == 0


@pytest.mark.unit
class TestLessonProgress:

    @pytest.mark.asyncio
    async def test_progress_is_recomputed_from_rows(self, db, teacher, student):
        course = await make_course(db, teacher)
        service = ProgressService(db)
        await service.enroll(student, course["_id"])
        first, second, third, _ = lesson_ids(course)

        assert await service.update_lesson_progress(student, course["_id"], first, True) == \
            {"progress": 25, "completed_lessons": 1}
        # Completing the same lesson again does not double count
        assert await service.update_lesson_progress(student, course["_id"], first, True) == \
            {"progress": 25, "completed_lessons": 1}
        await service.update_lesson_progress(student, course["_id"], second, True)
        assert await service.update_lesson_progress(student, course["_id"], third, True) == \
            {"progress": 75, "completed_lessons": 3}
        # Un-completing lowers the count
        assert await service.update_lesson_progress(student, course["_id"], second, False) == \
            {"progress": 50, "completed_lessons": 2}

        enrollment = await db.enrollments.find_one({"user_id": student.id})
        assert enrollment["percent_complete"] == 50
        assert enrollment["completed_lessons"] == 2

    @pytest.mark.asyncio
    async def test_completed_at_stamped_once_and_cleared(self, db, teacher, student):
        course = await make_course(db, teacher)
        service = ProgressService(db)
        enrollment = await service.enroll(student, course["_id"])
        lesson = lesson_ids(course)[0]

        await service.update_lesson_progress(student, course["_id"], lesson, True, 30)
        row = await db.lesson_progress.find_one({"enrollment_id": enrollment.id, "lesson_id": lesson})
        stamped = row["completed_at"]
        assert stamped is not None
        assert row["watched_duration"] == 30

        await service.update_lesson_progress(student, course["_id"], lesson, True, 45)
        row = await db.lesson_progress.find_one({"enrollment_id": enrollment.id, "lesson_id": lesson})
        assert row["completed_at"] == stamped

        await service.update_lesson_progress(student, course["_id"], lesson, False)
        row = await db.lesson_progress.find_one({"enrollment_id": enrollment.id, "lesson_id": lesson})
        assert row["completed_at"] is None
        assert await db.lesson_progress.count_documents({}) == 1

    @pytest.mark.asyncio
    async def test_progress_rows_keep_creation_time(self, db, teacher, student):
        course = await make_course(db, teacher)
        service = ProgressService(db)
        enrollment = await service.enroll(student, course["_id"])
        lesson = lesson_ids(course)[0]
        crud = EnrollmentCRUD(db)

        await service.update_lesson_progress(student, course["_id"], lesson, False, 10)
        first = await crud.get_progress(enrollment.id, lesson)
        assert isinstance(first, LessonProgress)
        assert (first.completed, first.watched_duration) == (False, 10)

        await service.update_lesson_progress(student, course["_id"], lesson, True, 20)
        second = await crud.get_progress(enrollment.id, lesson)
        assert second.id == first.id
        assert second.created_at == first.created_at
        assert second.completed and second.completed_at is not None

    @pytest.mark.asyncio
    async def test_not_enrolled(self, db, teacher, student):
        course = await make_course(db, teacher)
        with pytest.raises(NotEnrolledError) as exc_info:
            await ProgressService(db).update_lesson_progress(student, course["_id"], ObjectId(), True)
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_lesson_is_rejected(self, db, teacher, student):
        course = await make_course(db, teacher)
        service = ProgressService(db)
        await service.enroll(student, course["_id"])

        for _ in range(5):
            with pytest.raises(NotFoundError) as exc_info:
                await service.update_lesson_progress(student, course["_id"], ObjectId(), True)
            assert exc_info.value.message == "Lesson not found"

        enrollment = await db.enrollments.find_one({"user_id": student.id})
        assert enrollment["percent_complete"] == 0
        assert await db.lesson_progress.count_documents({}) == 0

    @pytest.mark.asyncio
    async def test_zero_lesson_snapshot(self, db, teacher, student):
        catalog = CatalogService(db)
        course = await make_course(db, teacher, sections=[])
        service = ProgressService(db)
        enrollment = await service.enroll(student, course["_id"])
        assert enrollment.total_lessons == 0

        # Lessons added after enrolling do not change the snapshot
        update = CourseUpdate(sections=[{"title": "Late", "lessons": [{"title": "New", "duration": 5}]}])
        course = await catalog.update_course(teacher, course["_id"], update)

        result = await service.update_lesson_progress(student, course["_id"], lesson_ids(course)[0], True)
        assert result == {"progress": 0, "completed_lessons": 1}

    @pytest.mark.asyncio
    async def test_lessons_added_after_enroll_cap_at_100(self, db, teacher, student):
        catalog = CatalogService(db)
        course = await make_course(db, teacher, sections=[
            {"title": "Only", "lessons": [{"title": "One", "duration": 5}]},
        ])
        service = ProgressService(db)
        await service.enroll(student, course["_id"])

        first = lesson_ids(course)[0]
        update = CourseUpdate(sections=[
            {"title": "Only", "lessons": [{"_id": str(first), "title": "One", "duration": 5}]},
            {"title": "Bonus", "lessons": [{"title": "Two", "duration": 5}]},
        ])
        course = await catalog.update_course(teacher, course["_id"], update)
        assert lesson_ids(course)[0] == first
        second = lesson_ids(course)[1]

        await service.update_lesson_progress(student, course["_id"], first, True)
        result = await service.update_lesson_progress(student, course["_id"], second, True)
        assert result == {"progress": 100, "completed_lessons": 2}

    @pytest.mark.asyncio
    async def test_gives_up_after_repeated_version_conflicts(self, db, teacher, student):
        course = await make_course(db, teacher)
        service = ProgressService(db)
        await service.enroll(student, course["_id"])

        collection = db.enrollments
        real_update_one = collection.update_one

        async def always_stale(query, update, upsert=False):
            # Another writer bumps the version before every attempt lands
            await real_update_one({"_id": query["_id"]}, {"$inc": {"version": 1}})
            return await real_update_one(query, update, upsert=upsert)
        collection.update_one = always_stale

        with pytest.raises(ConflictError):
            await service.update_lesson_progress(student, course["_id"], lesson_ids(course)[0], True)

    @pytest.mark.asyncio
    async def test_retry_after_one_conflict_succeeds(self, db, teacher, student):
        course = await make_course(db, teacher)
        service = ProgressService(db)
        await service.enroll(student, course["_id"])

        collection = db.enrollments
        real_update_one = collection.update_one
        calls = {"count": 0}

        async def stale_once(query, update, upsert=False):
            calls["count"] += 1
            if calls["count"] == 1:
                await real_update_one({"_id": query["_id"]}, {"$inc": {"version": 1}})
            return await real_update_one(query, update, upsert=upsert)
        collection.update_one = stale_once

        result = await service.update_lesson_progress(student, course["_id"], lesson_ids(course)[0], True)
        assert result == {"progress": 25, "completed_lessons": 1}
        assert calls["count"] == 2


@pytest.mark.unit
class TestProjections:

    @pytest.mark.asyncio
    async def test_deleted_courses_are_skipped(self, db, teacher, student):
        kept = await make_course(db, teacher, title="Kept")
        gone = await make_course(db, teacher, title="Gone")
        service = ProgressService(db)
        await service.enroll(student, kept["_id"])
        await service.enroll(student, gone["_id"])
        await db.courses.delete_one({"_id": gone["_id"]})

        enrolled = await service.get_enrolled_courses(student)
        overview = await service.get_progress_overview(student)

        assert [c["title"] for c in enrolled] == ["Kept"]
        assert [c["course_id"] for c in overview] == [kept["_id"]]
        assert overview[0]["total_lessons"] == 4
