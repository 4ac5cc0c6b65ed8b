"""
Unit tests for the SM-2 scheduler.

Covers the transition table, ease-factor arithmetic, graduation and the
error paths. The scheduler is pure, so no fixtures touch storage.
"""

from datetime import timedelta

import pytest

from lingo_srs.review.errors import InvalidGrade, InvalidItemState
from lingo_srs.review.models import CardStatus, Grade
from lingo_srs.review.scheduler import SM2Config, SM2Scheduler, coerce_grade, schedule

ALL_GRADES = list(Grade)


class TestLearningSteps:
    def test_three_good_reviews_from_new(self, new_item, now):
        first = schedule(new_item, Grade.GOOD, now)
        assert first.interval_days == 1
        assert first.status is CardStatus.LEARNING
        assert first.repetition_count == 1
        assert first.due_at == now + timedelta(days=1)

        second = schedule(first, Grade.GOOD, now + timedelta(days=1))
        assert second.interval_days == 6
        assert second.status is CardStatus.LEARNING
        assert second.repetition_count == 2

        third = schedule(second, Grade.GOOD, now + timedelta(days=7))
        assert third.interval_days == 15  # round(6 * 2.5)
        assert third.status is CardStatus.REVIEW
        assert third.repetition_count == 3
        assert third.due_at == now + timedelta(days=7 + 15)

    def test_first_success_after_lapse_restarts_steps(self, make_item, now):
        item = make_item(status=CardStatus.LEARNING, interval_days=1, repetition_count=0, lapse_count=1)
        updated = schedule(item, Grade.EASY, now)
        assert updated.interval_days == 1
        assert updated.repetition_count == 1
        assert updated.status is CardStatus.LEARNING

    def test_learning_step_updates_ease(self, new_item, now):
        assert schedule(new_item, Grade.EASY, now).ease_factor == pytest.approx(2.6)
        assert schedule(new_item, Grade.HARD, now).ease_factor == pytest.approx(2.36)
        assert schedule(new_item, Grade.GOOD, now).ease_factor == pytest.approx(2.5)


class TestReviewBranch:
    def test_interval_grows_to_graduation(self, make_item, now):
        item = make_item(interval_days=20, ease_factor=2.0, repetition_count=5)
        updated = schedule(item, Grade.GOOD, now)
        assert updated.interval_days == 40
        assert updated.status is CardStatus.GRADUATED
        assert updated.repetition_count == 6

    def test_interval_uses_ease_before_update(self, make_item, now):
        item = make_item(interval_days=10, ease_factor=2.0)
        updated = schedule(item, Grade.EASY, now)
        assert updated.interval_days == 20
        assert updated.ease_factor == pytest.approx(2.1)

    def test_half_days_round_up(self, make_item, now):
        item = make_item(interval_days=3, ease_factor=2.5)
        assert schedule(item, Grade.GOOD, now).interval_days == 8

    @pytest.mark.parametrize(
        "interval, ease, expected_status",
        [
            (8, 2.5, CardStatus.REVIEW),  # 20 days
            (14, 1.5, CardStatus.GRADUATED),  # exactly 21 days
            (9, 2.5, CardStatus.GRADUATED),  # 22.5 -> 23 days
        ],
    )
    def test_graduation_threshold(self, make_item, now, interval, ease, expected_status):
        updated = schedule(make_item(interval_days=interval, ease_factor=ease), Grade.GOOD, now)
        assert updated.status is expected_status
        assert (updated.status is CardStatus.GRADUATED) == (updated.interval_days >= 21)

    def test_graduated_item_stays_graduated_on_success(self, make_item, now):
        item = make_item(status=CardStatus.GRADUATED, interval_days=30, repetition_count=7)
        updated = schedule(item, Grade.HARD, now)
        assert updated.status is CardStatus.GRADUATED
        assert updated.interval_days == 75

    def test_hard_answer_floors_ease(self, make_item, now):
        item = make_item(ease_factor=1.35)
        assert schedule(item, Grade.HARD, now).ease_factor == 1.3


class TestLapse:
    @pytest.mark.parametrize("status", [CardStatus.LEARNING, CardStatus.REVIEW, CardStatus.GRADUATED])
    def test_lapse_resets_progress(self, make_item, now, status):
        item = make_item(status=status, interval_days=30, repetition_count=4, lapse_count=2)
        updated = schedule(item, Grade.AGAIN, now)

        assert updated.repetition_count == 0
        assert updated.interval_days == 1
        assert updated.status is CardStatus.LEARNING
        assert updated.lapse_count == 3
        assert updated.due_at == now + timedelta(days=1)
        assert updated.ease_factor == pytest.approx(2.3)

    def test_lapse_ease_floor(self, make_item, now):
        item = make_item(ease_factor=1.35)
        assert schedule(item, Grade.AGAIN, now).ease_factor == 1.3

    def test_lapse_at_floor_keeps_floor(self, make_item, now):
        item = make_item(ease_factor=1.3)
        assert schedule(item, Grade.AGAIN, now).ease_factor == 1.3

    def test_lapse_on_new_item(self, new_item, now):
        updated = schedule(new_item, Grade.AGAIN, now)
        assert updated.status is CardStatus.LEARNING
        assert updated.lapse_count == 1
        assert updated.interval_days == 1


class TestInvariants:
    @pytest.mark.parametrize("grade", ALL_GRADES)
    @pytest.mark.parametrize(
        "state",
        [
            dict(status=CardStatus.LEARNING, interval_days=1, repetition_count=0, ease_factor=1.3),
            dict(status=CardStatus.LEARNING, interval_days=6, repetition_count=2, ease_factor=1.4),
            dict(status=CardStatus.REVIEW, interval_days=15, repetition_count=3, ease_factor=2.5),
            dict(status=CardStatus.GRADUATED, interval_days=40, repetition_count=6, ease_factor=3.2),
        ],
    )
    def test_ease_and_interval_bounds(self, make_item, now, grade, state):
        updated = schedule(make_item(**state), grade, now)
        assert updated.ease_factor >= 1.3
        assert updated.interval_days >= 1
        assert updated.last_reviewed_at == now

    @pytest.mark.parametrize("grade", ALL_GRADES)
    def test_input_is_not_mutated(self, make_item, now, grade):
        item = make_item()
        before = (item.ease_factor, item.interval_days, item.status, item.due_at)
        first = schedule(item, grade, now)
        second = schedule(item, grade, now)
        assert (item.ease_factor, item.interval_days, item.status, item.due_at) == before
        assert first == second

    def test_lapse_never_raises_ease(self, make_item, now):
        for ease in (1.3, 1.31, 1.5, 2.5, 4.0):
            item = make_item(ease_factor=ease)
            updated = schedule(item, Grade.AGAIN, now)
            assert updated.ease_factor <= ease
            if ease > 1.3:
                assert updated.ease_factor < ease


class TestErrors:
    @pytest.mark.parametrize("outcome", ["excellent", "", 3, None, 0.5])
    def test_invalid_grade(self, make_item, now, outcome):
        with pytest.raises(InvalidGrade):
            schedule(make_item(), outcome, now)

    def test_grade_tags_accepted(self, make_item, now):
        assert coerce_grade("GOOD") is Grade.GOOD
        assert schedule(make_item(), "easy", now) == schedule(make_item(), Grade.EASY, now)

    @pytest.mark.parametrize(
        "state",
        [
            dict(ease_factor=1.2),
            dict(status=CardStatus.GRADUATED, interval_days=10),
            dict(status=CardStatus.REVIEW, interval_days=0),
            dict(lapse_count=-1),
        ],
    )
    def test_invalid_item_state(self, make_item, now, state):
        with pytest.raises(InvalidItemState):
            schedule(make_item(**state), Grade.GOOD, now)

    def test_scheduled_item_requires_due_date(self, make_item, now):
        from dataclasses import replace

        item = replace(make_item(), due_at=None)
        with pytest.raises(InvalidItemState):
            schedule(item, Grade.GOOD, now)


class TestConfig:
    def test_custom_graduation_interval(self, make_item, now):
        scheduler = SM2Scheduler(SM2Config(graduation_interval=14))
        updated = scheduler.schedule(make_item(interval_days=6, ease_factor=2.5), Grade.GOOD, now)
        assert updated.status is CardStatus.GRADUATED

    def test_second_step_must_precede_graduation(self):
        with pytest.raises(ValueError):
            SM2Config(second_interval=21, graduation_interval=21)

    def test_initial_ease_below_minimum_rejected(self):
        with pytest.raises(ValueError):
            SM2Config(initial_easiness=1.2, minimum_easiness=1.3)

    def test_initial_ease_equal_to_minimum_allowed(self):
        config = SM2Config(initial_easiness=1.3, minimum_easiness=1.3)
        assert config.initial_easiness == 1.3

    def test_from_settings(self):
        from config import Settings

        settings = Settings(srs_second_interval_days=4, srs_lapse_ease_penalty=0.3)
        config = SM2Config.from_settings(settings)
        assert config.second_interval == 4
        assert config.lapse_penalty == 0.3
        assert config.graduation_interval == 21
