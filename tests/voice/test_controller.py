"""
Tests for the clarification controller: end-to-end transcript handling,
confirmation, disambiguation and pending command lifecycle.
"""

from datetime import datetime, timedelta
from unittest.mock import Mock, patch

import pytest

from studio_voice.errors import ErrorKind
from studio_voice.models.outcome import CommandStatus, ControllerState, ExecutionReport
from studio_voice.models.studio import Lesson, Student
from studio_voice.persistence.memory_store import InMemoryLessonStore
from studio_voice.voice.controller import (
    CANCELLED_MESSAGE,
    EXPIRED_MESSAGE,
    UNKNOWN_TOKEN_MESSAGE,
    Selection,
    VoiceCommandController,
)
from studio_voice.voice.executor import VoiceCommandExecutor
from studio_voice.voice.parser import BAD_AMOUNT_HINT, BAD_DATE_HINT
from studio_voice.voice.resolver import DURATION_MESSAGE, HELP_MESSAGE


TODAY = "2026-02-17"


class TestHighConfidence:
    """Commands that execute without a follow-up."""

    def test_creates_missing_rows(self, run, store):
        result = run("Sarah and Tiffany came today")

        assert result.status == CommandStatus.SUCCESS
        assert result.state == ControllerState.EXECUTED
        assert result.message == "Marked attended: Sarah Nguyen, Tiffany Wong (Tue, Feb 17)"
        sarah = store.find_lesson_for_student_on_date("s-sarah", TODAY)
        assert (sarah.duration_minutes, sarah.amount_cents, sarah.time_of_day) == (45, 4500, "6:00 PM")
        assert sarah.completed
        assert len(store.lessons()) == 6

    def test_all_students(self, run, store):
        result = run("All students attended today")

        assert result.message == "Marked 4 lessons attended (Tue, Feb 17)"
        assert all(l.completed for l in store.lessons() if l.date == TODAY)

    def test_store_error_on_one_lesson_does_not_escape(self, run, store):
        original = store.update_lesson

        def flaky(lesson_id, fields):
            if lesson_id == "lesson-1":
                raise ConnectionError("socket reset")
            return original(lesson_id, fields)

        with patch.object(store, "update_lesson", side_effect=flaky):
            result = run("All students attended today")

        assert result.status == CommandStatus.SUCCESS
        assert "Failed: Ava Kim (socket reset)." in result.message
        assert store.get("lesson-4").completed
        assert not store.get("lesson-1").completed

    def test_marking_twice_is_idempotent(self, run, store):
        run("Mark Ava attended today")
        result = run("Mark Ava attended today")

        assert result.is_success
        assert len(store.lessons()) == 4
        assert store.get("lesson-1").completed

    def test_duration_update(self, run, store):
        result = run("Change Ava's lesson to an hour and a half")

        assert result.message == "Updated duration to 90 min: Ava Kim (Tue, Feb 17)"
        lesson = store.get("lesson-1")
        assert (lesson.duration_minutes, lesson.amount_cents) == (90, 9000)

    def test_amount_update_on_selected_date(self, run, store):
        result = run("Leo Chen's class is now $100", selected="2026-02-20")

        assert result.message == "Updated lesson amount to $100: Leo Chen (Fri, Feb 20)"
        assert store.get("lesson-3").amount_cents == 10000

    def test_move_with_month_day_dates(self):
        leo = Student(
            id="s-leo-garcia", first_name="Leo", last_name="Garcia", duration_minutes=60,
            rate_cents=6000, day_of_week=2, time_of_day="4:00 PM",
        )
        store = InMemoryLessonStore(
            students=[leo],
            lessons=[Lesson(id="lesson-9", student_id=leo.id, date="2025-02-18", duration_minutes=60,
                            amount_cents=6000, time_of_day="4:00 PM")],
        )
        controller = VoiceCommandController(store)

        result = controller.handle(
            "Move Leo's lesson from Friday Feb 18 to Sunday Feb 20 at 5pm for 1 hour",
            store.snapshot(),
            "2025-02-19",
        )

        assert result.status == CommandStatus.SUCCESS
        assert result.message == "Moved Leo Garcia to Thu, Feb 20 at 5:00 PM."
        moved = store.get("lesson-9")
        assert (moved.date, moved.time_of_day, moved.duration_minutes) == ("2025-02-20", "5:00 PM", 60)


class TestDisambiguation:
    """Commands that wait for the user to choose."""

    def test_choose_student(self, run, controller, store):
        result = run("Leo came today")

        assert result.status == CommandStatus.NEEDS_CLARIFICATION
        assert result.kind == ErrorKind.AMBIGUOUS_ENTITY
        assert result.message == "Which Leo?"
        assert result.options == ["Leo Chen", "Leo Garcia"]
        assert controller.pending_count == 1

        resumed = controller.resume(result.pending_command, Selection(student_id="s-leo-garcia"))

        assert resumed.status == CommandStatus.SUCCESS
        assert resumed.message == "Marked attended: Leo Garcia (Tue, Feb 17)"
        assert store.get("lesson-2").completed
        assert not store.get("lesson-3").completed
        assert controller.pending_count == 0

    def test_choose_by_partial_label(self, run, controller, store):
        result = run("Leo came today")

        resumed = controller.resume(result.pending_command, Selection(text="Garcia"))

        assert resumed.is_success
        assert store.get("lesson-2").completed

    def test_unrecognized_choice_reissues_question(self, run, controller):
        result = run("Leo came today")

        again = controller.resume(result.pending_command, Selection(text="someone else"))

        assert again.status == CommandStatus.NEEDS_CLARIFICATION
        assert again.message.startswith("Please choose one of the options.")
        assert again.options == ["Leo Chen", "Leo Garcia"]
        assert again.pending_command != result.pending_command
        assert controller.pending_count == 1

    def test_amount_or_rate(self, run, controller, store):
        result = run("Leo Chen is now $100", selected="2026-02-20")

        assert result.message == "Should $100 be the lesson amount or the hourly rate?"
        assert result.options == ["Set lesson amount", "Set hourly rate"]

        resumed = controller.resume(result.pending_command, Selection(text="hourly rate"))

        assert resumed.message == "Updated hourly rate, lesson amount now $100: Leo Chen (Fri, Feb 20)"
        assert store.get("lesson-3").amount_cents == 10000

    def test_weekday_questions_one_at_a_time(self, run, controller, store):
        result = run("Move Leo Chen from Friday to Sunday at 5pm")

        assert result.message == 'For "friday", do you mean Fri, Feb 13 or Fri, Feb 20?'
        assert result.options == ["Last Friday (Fri, Feb 13)", "Next Friday (Fri, Feb 20)"]

        second = controller.resume(result.pending_command, Selection(option_index=1))

        assert second.status == CommandStatus.NEEDS_CLARIFICATION
        assert second.message == 'For "sunday", do you mean Sun, Feb 15 or Sun, Feb 22?'

        done = controller.resume(second.pending_command, Selection(date_key="2026-02-22"))

        assert done.message == "Moved Leo Chen to Sun, Feb 22 at 5:00 PM."
        moved = store.get("lesson-3")
        assert (moved.date, moved.time_of_day) == ("2026-02-22", "5:00 PM")
        assert len(store.lessons()) == 4


class TestConfirmation:
    """Low-confidence commands that wait for a yes or no."""

    def test_confirm(self, run, controller, store):
        result = run("Nobody came today")

        assert result.status == CommandStatus.NEEDS_CONFIRMATION
        assert result.message == "Mark all 4 lessons not attended on Tue, Feb 17?"
        assert result.options == []

        resumed = controller.resume(result.pending_command, Selection(text="yes"))

        assert resumed.is_success
        assert resumed.message.startswith("Marked 3 lessons not attended (Tue, Feb 17)")
        assert "Skipped (no lesson): Sarah Nguyen." in resumed.message
        assert store.find_lesson_for_student_on_date("s-sarah", TODAY) is None

    def test_cancel(self, run, controller, store):
        store.update_lesson("lesson-1", {"completed": True})
        result = run("Nobody came today")

        resumed = controller.resume(result.pending_command, Selection(confirm=False))

        assert resumed.status == CommandStatus.SUCCESS
        assert resumed.message == CANCELLED_MESSAGE
        assert resumed.state == ControllerState.CANCELLED
        assert store.get("lesson-1").completed

    def test_unclear_reply_asks_again(self, run, controller):
        result = run("Nobody came today")

        again = controller.resume(result.pending_command, Selection(text="maybe"))

        assert again.status == CommandStatus.NEEDS_CONFIRMATION
        assert again.message.startswith("Please answer yes or no.")
        assert again.pending_command != result.pending_command

    def test_pending_command_runs_once(self, store):
        executor = Mock(spec=VoiceCommandExecutor)
        executor.execute.return_value = ExecutionReport(command="attendance_mark", message="done")
        controller = VoiceCommandController(store, executor=executor)
        result = controller.handle("Nobody came today", store.snapshot(), TODAY)

        first = controller.resume(result.pending_command, Selection(confirm=True))
        second = controller.resume(result.pending_command, Selection(confirm=True))

        assert first.is_success
        assert second.status == CommandStatus.ERROR
        assert second.kind == ErrorKind.EXPIRED
        assert second.message == UNKNOWN_TOKEN_MESSAGE
        executor.execute.assert_called_once()


class TestPendingLifecycle:

    def test_expired_pending_command(self, store):
        now = [datetime(2026, 2, 17, 15, 0)]
        controller = VoiceCommandController(store, clock=lambda: now[0])
        result = controller.handle("Leo came today", store.snapshot(), TODAY)

        now[0] += timedelta(minutes=11)
        resumed = controller.resume(result.pending_command, Selection(student_id="s-leo-garcia"))

        assert resumed.status == CommandStatus.ERROR
        assert resumed.message == EXPIRED_MESSAGE
        assert resumed.state == ControllerState.CANCELLED
        assert not store.get("lesson-2").completed

    def test_close_session_discards_pending(self, run, controller):
        run("Leo came today")
        run("Nobody came today")

        assert controller.close_session() == 2
        assert controller.pending_count == 0
        assert controller.close_session() == 0

    def test_pending_command_serializes(self, run):
        result = run("Leo came today")

        dumped = result.pending.model_dump(mode="json")

        assert dumped["kind"] == "disambiguation"
        assert dumped["payload"]["name_fragments"] == ["Leo"]
        assert dumped["disambiguation"]["options"][0]["value"] == "s-leo-chen"


class TestUnresolvable:
    """Nothing runs; the user gets a plain-language reason."""

    def test_help(self, run):
        result = run("What can you do?")

        assert result.status == CommandStatus.NEEDS_CLARIFICATION
        assert result.message == HELP_MESSAGE
        assert result.pending_command is None

    def test_unknown_student(self, run):
        result = run("Xavier came today")

        assert result.status == CommandStatus.NEEDS_CLARIFICATION
        assert result.kind == ErrorKind.ENTITY_NOT_FOUND
        assert result.message == "I couldn't find: Xavier."

    def test_unsupported_duration(self, run, store):
        result = run("Change Ava's lesson to 25 minutes")

        assert result.kind == ErrorKind.INVALID_VALUE
        assert result.message == DURATION_MESSAGE
        assert store.get("lesson-1").duration_minutes == 60

    @pytest.mark.parametrize("transcript", [
        "Mark Ava attended on 2/30",
        "Ava came on the 45th",
        "Move Leo Chen from 2026-13-01 to tomorrow",
    ])
    def test_unparseable_date_runs_nothing(self, run, store, transcript):
        before = store.lessons()

        result = run(transcript)

        assert result.status == CommandStatus.NEEDS_CLARIFICATION
        assert result.kind == ErrorKind.PARSE_FAILURE
        assert result.message == BAD_DATE_HINT
        assert store.lessons() == before

    def test_unreadable_amount_runs_nothing(self, run, store):
        result = run("Leo Chen's class is now $100.999", selected="2026-02-20")

        assert result.message == BAD_AMOUNT_HINT
        assert store.get("lesson-3").amount_cents == 7000

    def test_nothing_to_mark(self, run):
        result = run("Emma was absent yesterday")

        assert result.status == CommandStatus.ERROR
        assert result.kind == ErrorKind.NOTHING_TO_EXECUTE

    def test_result_shape(self, run):
        assert set(run("Leo came today").to_dict()) == {"status", "message", "options", "pending_command"}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
