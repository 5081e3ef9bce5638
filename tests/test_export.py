"""Tests for JSON and markdown export of a review."""

from __future__ import annotations

import json

from chess_review.accuracy import generate_game_summary
from chess_review.export import (
    export_review_json,
    export_review_markdown,
    review_to_dict,
    side_label,
    write_review,
)
from chess_review.games import moves_from_san
from chess_review.models import BLACK, BLUNDER, GREAT, INACCURACY, WHITE, GameReview, MoveReview


def _sample_review() -> GameReview:
    records = moves_from_san(["e4", "e5", "Qh5", "Nc6"])
    plan = [
        # eval_before, eval_after, loss, classification, best, comment
        (0.2, 0.25, 0.0, GREAT, "e4", "Great move. Nothing was conceded."),
        (0.25, 0.3, 0.05, GREAT, "e5", "Great move. Nothing was conceded."),
        (0.3, -0.6, 0.9, INACCURACY, "Nf3", "This move misses a better continuation. Best move: Nf3"),
        (-0.6, 1.456, 2.056, BLUNDER, "g6", "This move seriously compromises the position. Best move: g6"),
    ]
    moves = [
        MoveReview(
            record=record,
            eval_before=before,
            eval_after=after,
            eval_loss=loss,
            is_mate=False,
            lost_mate=False,
            material_loss=0,
            best_move=best,
            classification=label,
            comment=comment,
        )
        for record, (before, after, loss, label, best, comment) in zip(records, plan)
    ]
    return GameReview(moves=moves, summary=generate_game_summary(moves))


class TestReviewToDict:

    def test_move_entries(self):
        data = review_to_dict(_sample_review())
        assert len(data["moves"]) == 4
        last = data["moves"][3]
        assert last == {
            "move": "Nc6",
            "evalBefore": -0.6,
            "evalAfter": 1.46,
            "bestMove": "g6",
            "classification": BLUNDER,
            "comment": "This move seriously compromises the position. Best move: g6",
        }

    def test_summary(self):
        summary = review_to_dict(_sample_review())["summary"]
        assert set(summary) == {
            "whiteAccuracy", "blackAccuracy", "blunders", "mistakes", "inaccuracies", "keyMoments",
        }
        assert summary["blunders"] == 1
        assert summary["inaccuracies"] == 1
        assert summary["keyMoments"] == [
            {"moveIndex": 3, "move": "Nc6", "evalLoss": 2.06, "classification": BLUNDER},
        ]

    def test_json_roundtrips(self):
        review = _sample_review()
        assert json.loads(export_review_json(review)) == review_to_dict(review)


class TestMarkdown:

    def test_sections(self):
        text = export_review_markdown(_sample_review(), title="Casual Game")
        assert text.startswith("# Casual Game")
        assert "## Accuracy" in text
        assert "## Key Moments" in text
        assert "- 2... Nc6 (Blunder, -2.06)" in text
        assert "| 2. | Qh5 | -0.60 | Nf3 | Inaccuracy |" in text

    def test_no_key_moments_section_when_clean(self):
        review = _sample_review()
        review.summary.key_moments = []
        assert "## Key Moments" not in export_review_markdown(review)


class TestWriteReview:

    def test_suffix_selects_format(self, tmp_path):
        review = _sample_review()
        json_path = write_review(review, tmp_path / "review.json")
        md_path = write_review(review, tmp_path / "out" / "review.md")

        assert json.loads(json_path.read_text())["summary"]["blunders"] == 1
        assert md_path.read_text().startswith("# Game Review")
        # No temp files left behind
        assert sorted(p.name for p in tmp_path.rglob("*.tmp")) == []

    def test_explicit_format(self, tmp_path):
        path = write_review(_sample_review(), tmp_path / "report.txt", "markdown")
        assert path.read_text().startswith("# Game Review")


class TestSideLabel:

    def test_labels(self):
        assert side_label(WHITE) == "White"
        assert side_label(BLACK) == "Black"
