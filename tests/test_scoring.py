"""Tests for evaluation loss, move classification and explanations."""

from __future__ import annotations

import random

import pytest

from chess_review.models import (
    BEST,
    BLACK,
    BLUNDER,
    BRILLIANT,
    GOOD,
    GREAT,
    INACCURACY,
    MISTAKE,
    WHITE,
    EvaluationResult,
)
from chess_review.scoring import (
    DEFAULT_THRESHOLDS,
    MATE_DISPLAY_PAWNS,
    calculate_eval_loss,
    classify_move,
    display_pawns,
    generate_move_explanation,
)

cp = EvaluationResult.centipawns
mate = EvaluationResult.mate_in


# ---------------------------------------------------------------------------
# Evaluation loss
# ---------------------------------------------------------------------------


class TestEvalLossFinite:

    def test_white_drop(self):
        loss = calculate_eval_loss(cp(20), cp(-350), WHITE)
        assert loss.eval_loss == pytest.approx(3.70)
        assert not loss.is_mate
        assert not loss.lost_mate

    def test_black_drop_uses_black_perspective(self):
        # White-relative scores rising means Black lost ground
        loss = calculate_eval_loss(cp(-50), cp(100), BLACK)
        assert loss.eval_loss == pytest.approx(1.5)

    def test_improvement_is_zero(self):
        assert calculate_eval_loss(cp(10), cp(90), WHITE).eval_loss == 0
        assert calculate_eval_loss(cp(10), cp(-90), BLACK).eval_loss == 0

    def test_decisive_position_discounted(self):
        loss = calculate_eval_loss(cp(600), cp(500), WHITE)
        assert loss.eval_loss == pytest.approx(0.30)
        assert classify_move(loss.eval_loss) == GOOD

    def test_exactly_five_pawns_not_discounted(self):
        loss = calculate_eval_loss(cp(500), cp(400), WHITE)
        assert loss.eval_loss == pytest.approx(1.0)

    def test_losing_side_also_discounted(self):
        loss = calculate_eval_loss(cp(700), cp(900), BLACK)
        assert loss.eval_loss == pytest.approx(0.6)

    def test_never_negative(self):
        rng = random.Random(1234)
        for _ in range(500):
            before = cp(rng.randint(-2000, 2000)) if rng.random() < 0.8 else mate(rng.randint(-9, 9))
            after = cp(rng.randint(-2000, 2000)) if rng.random() < 0.8 else mate(rng.randint(-9, 9))
            color = rng.choice((WHITE, BLACK))
            assert calculate_eval_loss(before, after, color).eval_loss >= 0


class TestEvalLossMate:

    def test_winning_mate_lost(self):
        loss = calculate_eval_loss(mate(3), cp(200), WHITE)
        assert loss.eval_loss == 5.0
        assert loss.is_mate
        assert loss.lost_mate
        assert classify_move(loss.eval_loss, loss.is_mate, loss.lost_mate) == BLUNDER

    def test_black_winning_mate_lost(self):
        loss = calculate_eval_loss(mate(-2), cp(-300), BLACK)
        assert loss.lost_mate
        assert loss.eval_loss == 5.0

    def test_any_vanished_mate_is_lost(self):
        # Black was being mated; the mate is gone all the same
        loss = calculate_eval_loss(mate(3), cp(0), BLACK)
        assert loss.eval_loss == 5.0
        assert loss.is_mate
        assert loss.lost_mate
        assert classify_move(loss.eval_loss, loss.is_mate, loss.lost_mate) == BLUNDER

    def test_finding_mate_costs_nothing(self):
        loss = calculate_eval_loss(cp(300), mate(2), WHITE)
        assert loss.eval_loss == 0
        assert classify_move(loss.eval_loss, loss.is_mate, loss.lost_mate) == GREAT

    def test_any_new_mate_costs_nothing(self):
        # Mate against the mover appearing still scores zero loss
        loss = calculate_eval_loss(cp(-100), mate(-1), WHITE)
        assert loss.eval_loss == 0
        assert loss.is_mate
        assert not loss.lost_mate
        assert classify_move(loss.eval_loss, loss.is_mate) == GREAT

    def test_delivering_checkmate(self):
        # Mate 0 after the move: the mover has just mated
        loss = calculate_eval_loss(mate(-1), mate(0), BLACK)
        assert loss.eval_loss == 0
        assert not loss.lost_mate

    def test_mate_flipped_sides(self):
        loss = calculate_eval_loss(mate(2), mate(-3), WHITE)
        assert loss.eval_loss == 5.0
        assert loss.lost_mate

    def test_mate_got_longer(self):
        loss = calculate_eval_loss(mate(2), mate(5), WHITE)
        assert loss.eval_loss == 2.0
        assert not loss.lost_mate
        assert classify_move(loss.eval_loss, loss.is_mate) == BLUNDER

    def test_mate_kept_on_schedule(self):
        loss = calculate_eval_loss(mate(3), mate(2), WHITE)
        assert loss.eval_loss == 0
        assert classify_move(loss.eval_loss, loss.is_mate) == GREAT


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class TestClassifyMove:

    @pytest.mark.parametrize("eval_loss,expected", [
        (0.0, GREAT),
        (0.01, BEST),
        (0.15, BEST),
        (0.16, GOOD),
        (0.5, GOOD),
        (0.51, INACCURACY),
        (1.2, INACCURACY),
        (1.21, MISTAKE),
        (2.5, MISTAKE),
        (2.51, BLUNDER),
        (4.0, BLUNDER),
    ])
    def test_thresholds(self, eval_loss, expected):
        assert classify_move(eval_loss) == expected

    def test_brilliant_sacrifice(self):
        assert classify_move(0.2, material_loss=3) == BRILLIANT
        assert classify_move(0.0, material_loss=1) == BRILLIANT

    def test_costly_sacrifice_not_brilliant(self):
        assert classify_move(0.5, material_loss=3) == GOOD
        assert classify_move(3.0, material_loss=9) == BLUNDER

    def test_material_gain_still_great(self):
        assert classify_move(0.0, material_loss=-8) == GREAT

    def test_lost_mate_overrides_everything(self):
        assert classify_move(0.0, is_mate=True, lost_mate=True, material_loss=5) == BLUNDER

    def test_mate_small_loss_is_best(self):
        assert classify_move(0.1, is_mate=True) == BEST

    def test_mate_with_sacrifice_is_best(self):
        assert classify_move(0.0, is_mate=True, material_loss=9) == BEST

    def test_thresholds_version(self):
        assert DEFAULT_THRESHOLDS.version
        assert DEFAULT_THRESHOLDS.mistake == 2.5


# ---------------------------------------------------------------------------
# Explanations
# ---------------------------------------------------------------------------


class TestExplanation:

    def test_best(self):
        assert generate_move_explanation(BEST, "Nf3") == (
            "This is the best move according to the engine."
        )

    def test_great(self):
        assert generate_move_explanation(GREAT, "Nf3").startswith("Great move")

    def test_brilliant_names_material(self):
        text = generate_move_explanation(BRILLIANT, None, material_loss=3)
        assert "3 points of material" in text

    def test_material_before_positional(self):
        text = generate_move_explanation(BLUNDER, "Qd2", material_loss=9)
        assert text == "This move throws away 9 points of material."
        assert "Best move" not in text

    def test_single_point(self):
        text = generate_move_explanation(MISTAKE, "e5", material_loss=1)
        assert text == "This move loses 1 point of material."

    def test_positional_names_best_move(self):
        text = generate_move_explanation(INACCURACY, "Nf3")
        assert text == "This move misses a better continuation. Best move: Nf3"

    def test_positional_without_best_move(self):
        assert generate_move_explanation(MISTAKE, None).endswith(".")

    def test_lost_mate(self):
        text = generate_move_explanation(BLUNDER, "Qh7#", is_mate=True, lost_mate=True)
        assert "forced mate slip away" in text
        assert text.endswith("Best move: Qh7#")

    def test_delayed_mate(self):
        text = generate_move_explanation(BLUNDER, "Qh7#", is_mate=True)
        assert text == "This move lets a faster mate get away. Best move: Qh7#"


class TestDisplayPawns:

    def test_centipawns(self):
        assert display_pawns(cp(-135), WHITE) == -1.35

    def test_mate_capped(self):
        assert display_pawns(mate(4), BLACK) == MATE_DISPLAY_PAWNS
        assert display_pawns(mate(-1), WHITE) == -MATE_DISPLAY_PAWNS

    def test_mate_zero_credits_mover(self):
        assert display_pawns(mate(0), BLACK) == -MATE_DISPLAY_PAWNS
        assert display_pawns(mate(0), WHITE) == MATE_DISPLAY_PAWNS
