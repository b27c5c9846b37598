"""
Integration Tests for Question Sequencing
=========================================

Purpose
-------
Verify topic-scoped ``seq_no`` placement through the handlers and the
SequenceManager against a real (in-memory) database and the cache.

Test Coverage
-------------
- Appending without a position
- Inserting into an occupied position shifts the tail by one
- Cached pages never show pre-shift positions
- Drafts: ignored by occupancy and append, moved by shifts
- Re-positioning an existing question
- Paging by index stays consistent with ``seq_no`` order
"""

import pytest

from src.database.models import QuestionStatus
from src.modules.shared.exceptions import ValidationError


async def seq_map(handlers, topic_slug="algebra"):
    """question text -> seq_no for every published question in the topic."""
    page = await handlers.questions.list_by_index(topic_slug, 1, 50)
    return {q.question: q.seq_no for q in page.questions}


# ============================================================================
# APPEND
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestAppend:
    """Questions created without a position go after the last one."""

    async def test_positions_start_at_one_and_increase(self, handlers, algebra_topic, add_question):
        # Act
        first = await add_question("Algebra", "Q1?")
        second = await add_question("Algebra", "Q2?")
        third = await add_question("Algebra", "Q3?")

        # Assert
        assert [first.seq_no, second.seq_no, third.seq_no] == [1, 2, 3]

    async def test_append_ignores_drafts(self, handlers, algebra_topic, add_question):
        # Arrange
        await add_question("Algebra", "Published?")
        await add_question("Algebra", "Draft?", seq_no=7, status=QuestionStatus.DRAFT)

        # Act
        appended = await add_question("Algebra", "Next?")

        # Assert
        assert appended.seq_no == 2

    async def test_next_seq_no_for_empty_topic(self, container, algebra_topic):
        assert await container.sequence.next_seq_no(algebra_topic.id) == 1


# ============================================================================
# INSERT WITH SHIFT
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestInsertShift:
    """Inserting at an occupied position moves every later question up."""

    async def test_insert_at_occupied_position(self, handlers, algebra_topic, add_question):
        # Arrange
        for text in ("Q1?", "Q2?", "Q3?"):
            await add_question("Algebra", text)

        # Act
        inserted = await add_question("Algebra", "New?", seq_no=2)

        # Assert
        assert inserted.seq_no == 2
        assert await seq_map(handlers) == {"Q1?": 1, "New?": 2, "Q2?": 3, "Q3?": 4}

        topic = await handlers.get_topic_by_slug("algebra")
        assert topic.qn_count == 4

        page = await handlers.get_questions("algebra", 2)
        assert [q.question for q in page.questions] == ["New?"]
        assert page.total_count == 4

    async def test_cached_page_is_invalidated_by_shift(self, handlers, algebra_topic, add_question):
        # Arrange - warm the cache for position 2
        for text in ("Q1?", "Q2?", "Q3?"):
            await add_question("Algebra", text)
        before = await handlers.get_questions("algebra", 2)
        assert before.questions[0].question == "Q2?"

        # Act
        await add_question("Algebra", "New?", seq_no=2)
        after = await handlers.get_questions("algebra", 2)

        # Assert
        assert after.questions[0].question == "New?"
        assert after.questions[0].topic.qn_count == 4

    async def test_insert_at_free_position_does_not_shift(self, handlers, algebra_topic, add_question):
        await add_question("Algebra", "Q1?")

        placed = await add_question("Algebra", "Far?", seq_no=10)

        assert placed.seq_no == 10
        assert await seq_map(handlers) == {"Q1?": 1, "Far?": 10}

    async def test_shift_reports_moved_rows(self, container, algebra_topic, add_question):
        for text in ("Q1?", "Q2?", "Q3?"):
            await add_question("Algebra", text)

        shifted = await container.sequence.shift(algebra_topic.id, 2)

        assert shifted == 2

    async def test_shift_is_scoped_to_topic(self, handlers, algebra_topic, add_question):
        # Arrange
        await handlers.create_topic("Geometry", "Khan Academy")
        await add_question("Algebra", "A1?")
        await add_question("Geometry", "G1?")

        # Act
        await add_question("Algebra", "A0?", seq_no=1)

        # Assert
        assert await seq_map(handlers, "geometry") == {"G1?": 1}
        assert await seq_map(handlers) == {"A0?": 1, "A1?": 2}


# ============================================================================
# DRAFTS
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestDraftsAndShifts:
    """Occupancy only counts published questions; shifts move every status."""

    async def test_draft_does_not_occupy(self, container, algebra_topic, add_question):
        await add_question("Algebra", "Draft?", seq_no=2, status=QuestionStatus.DRAFT)

        assert await container.sequence.is_occupied(algebra_topic.id, 2) is False

    async def test_shift_moves_drafts(self, container, handlers, algebra_topic, add_question):
        # Arrange
        await add_question("Algebra", "Q1?")
        await add_question("Algebra", "Q2?")
        draft = await add_question("Algebra", "Draft?", seq_no=3, status=QuestionStatus.DRAFT)

        # Act
        await add_question("Algebra", "New?", seq_no=2)

        # Assert
        moved = await container.questions.get_any_by_id(draft.id)
        assert moved.seq_no == 4

    async def test_publishing_draft_keeps_positions_unique(
        self, container, handlers, algebra_topic, add_question
    ):
        # Arrange
        await add_question("Algebra", "Q1?")
        await add_question("Algebra", "Q2?")
        draft = await add_question("Algebra", "Draft?", status=QuestionStatus.DRAFT)
        later = await add_question("Algebra", "Q3?")
        assert (draft.seq_no, later.seq_no) == (3, 3)

        # Act
        published = await handlers.update_question(draft.id, status=QuestionStatus.PUBLISHED)

        # Assert
        page = await handlers.get_questions("algebra", 1, limit=10)
        assert [(q.seq_no, q.question) for q in page.questions] == [
            (1, "Q1?"),
            (2, "Q2?"),
            (3, "Draft?"),
            (4, "Q3?"),
        ]
        assert published.seq_no == 3
        assert (await container.questions.get_any_by_id(later.id)).seq_no == 4

    async def test_publishing_draft_at_free_position_does_not_shift(
        self, container, handlers, algebra_topic, add_question
    ):
        await add_question("Algebra", "Q1?")
        draft = await add_question("Algebra", "Draft?", status=QuestionStatus.DRAFT)

        published = await handlers.update_question(draft.id, status=QuestionStatus.PUBLISHED)

        assert published.seq_no == 2
        assert await container.sequence.next_seq_no(algebra_topic.id) == 3

    async def test_republishing_does_not_shift(self, container, handlers, algebra_topic, add_question):
        first = await add_question("Algebra", "Q1?")
        second = await add_question("Algebra", "Q2?")

        await handlers.update_question(first.id, status=QuestionStatus.PUBLISHED)

        assert (await container.questions.get_any_by_id(second.id)).seq_no == 2

    async def test_invalid_position_rejected(self, handlers, algebra_topic, add_question):
        with pytest.raises(ValidationError):
            await add_question("Algebra", "Bad?", seq_no=0)

    async def test_position_accepts_digit_string(self, handlers, algebra_topic, add_question):
        placed = await add_question("Algebra", "Str?", seq_no="3")

        assert placed.seq_no == 3


# ============================================================================
# RE-POSITIONING
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestReposition:
    """Moving an existing question excludes it from its own shift."""

    async def test_move_to_front(self, handlers, algebra_topic, add_question):
        # Arrange
        await add_question("Algebra", "Q1?")
        await add_question("Algebra", "Q2?")
        last = await add_question("Algebra", "Q3?")

        # Act
        updated = await handlers.update_question(last.id, seq_no=1)

        # Assert
        assert updated.seq_no == 1
        assert await seq_map(handlers) == {"Q3?": 1, "Q1?": 2, "Q2?": 3}

    async def test_move_to_unoccupied_position(self, handlers, algebra_topic, add_question):
        await add_question("Algebra", "Q1?")
        second = await add_question("Algebra", "Q2?")

        await handlers.update_question(second.id, seq_no=5)

        assert await seq_map(handlers) == {"Q1?": 1, "Q2?": 5}


# ============================================================================
# PAGINATION
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestPagination:
    """Index-based pages walk the topic in ``seq_no`` order."""

    async def test_pages_follow_sequence(self, handlers, algebra_topic, add_question):
        # Arrange
        for number in range(1, 6):
            await add_question("Algebra", f"Q{number}?")

        # Act
        pages = [
            await handlers.get_questions("algebra", index, limit=2)
            for index in (1, 3, 5)
        ]

        # Assert
        assert [[q.seq_no for q in page.questions] for page in pages] == [[1, 2], [3, 4], [5]]
        assert {page.total_count for page in pages} == {5}

    async def test_limit_is_clamped(self, container, handlers, algebra_topic, add_question):
        for number in range(1, 4):
            await add_question("Algebra", f"Q{number}?")
        handlers.max_limit = 2

        page = await handlers.get_questions("algebra", 1, limit=100)

        assert len(page) == 2

    async def test_default_limit_is_fetch_limit(self, handlers, algebra_topic, add_question):
        await add_question("Algebra", "Q1?")
        await add_question("Algebra", "Q2?")

        page = await handlers.get_questions("algebra", "1")

        assert len(page) == 1
        assert page.total_count == 2
