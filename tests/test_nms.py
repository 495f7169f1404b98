"""
Tests for greedy non-max suppression.
"""

import itertools

import numpy as np
import pytest

from detection.decoder import decode_output
from detection.nms import filter_boxes
from models.detection import Detection


def det(x1, y1, x2, y2, confidence, class_id=0):
    return Detection.from_xyxy(x1, y1, x2, y2, confidence=confidence, class_id=class_id)


def random_candidates(seed, n=60):
    rng = np.random.default_rng(seed)
    out = []
    for _ in range(n):
        x1, y1 = rng.integers(0, 200, size=2)
        w, h = rng.integers(5, 80, size=2)
        out.append(det(float(x1), float(y1), float(x1 + w), float(y1 + h), float(rng.uniform(0.5, 1.0))))
    return out


class TestFilterBoxes:
    def test_empty(self):
        assert filter_boxes([]) == []

    def test_overlapping_pair_keeps_lower_confidence_box(self):
        low = det(0, 0, 100, 100, 0.6)
        high = det(0, 0, 100, 80, 0.9)
        assert low.iou(high) == pytest.approx(0.8)

        kept = filter_boxes([high, low])

        assert kept == [low]

    def test_iou_equal_to_threshold_keeps_both(self):
        a = det(0, 0, 100, 100, 0.6)
        b = det(0, 0, 100, 70, 0.9)
        assert a.iou(b) == pytest.approx(0.7)
        assert filter_boxes([a, b]) == [a, b]

    def test_large_boxes_compare_in_double_precision(self):
        a = det(0, 0, 10000, 10000, 0.6)
        b = det(0, 0, 10000, 7000, 0.9)
        iou = a.iou(b)
        assert isinstance(iou, float)
        assert iou == 0.7
        assert filter_boxes([a, b]) == [a, b]

    def test_output_is_ascending_confidence(self):
        boxes = [
            det(0, 0, 10, 10, 0.9),
            det(100, 100, 110, 110, 0.55),
            det(200, 200, 210, 210, 0.7),
        ]
        kept = filter_boxes(boxes)
        assert [d.confidence for d in kept] == [0.55, 0.7, 0.9]

    def test_equal_confidence_keeps_input_order(self):
        first = det(0, 0, 100, 100, 0.8, class_id=1)
        second = det(0, 0, 100, 100, 0.8, class_id=2)
        assert filter_boxes([first, second]) == [first]

    def test_suppression_ignores_class(self):
        person = det(0, 0, 100, 100, 0.6, class_id=0)
        car = det(1, 1, 100, 100, 0.7, class_id=2)
        assert filter_boxes([person, car]) == [person]

    def test_degenerate_boxes_are_never_suppressed(self):
        a = det(5, 5, 5, 5, 0.6)
        b = det(5, 5, 5, 5, 0.7)
        assert filter_boxes([a, b]) == [a, b]

    def test_compares_only_against_kept_boxes(self):
        # b overlaps a and c, a and c do not overlap each other
        a = det(0, 0, 100, 100, 0.6)
        b = det(10, 0, 110, 100, 0.7)
        c = det(20, 0, 120, 100, 0.8)
        assert a.iou(b) > 0.7 and b.iou(c) > 0.7 and a.iou(c) <= 0.7
        assert filter_boxes([c, b, a]) == [a, c]

    def test_custom_threshold(self):
        a = det(0, 0, 100, 100, 0.6)
        b = det(50, 0, 150, 100, 0.9)
        assert len(filter_boxes([a, b])) == 2
        assert filter_boxes([a, b], iou_threshold=0.3) == [a]

    @pytest.mark.parametrize("seed", [0, 1, 2, 3])
    def test_no_kept_pair_overlaps_above_threshold(self, seed):
        kept = filter_boxes(random_candidates(seed))
        for a, b in itertools.combinations(kept, 2):
            assert a.iou(b) <= 0.7

    @pytest.mark.parametrize("seed", [0, 1, 2, 3])
    def test_idempotent(self, seed):
        kept = filter_boxes(random_candidates(seed))
        assert filter_boxes(kept) == kept

    def test_decoder_to_filter_with_no_candidates(self):
        out = np.full((1, 84, 8400), 0.1, dtype=np.float32)
        assert filter_boxes(decode_output(out, 640, 640)) == []
