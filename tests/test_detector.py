from types import SimpleNamespace

import pytest

pytest.importorskip("cv2")

from gesturebooth.detector import faces_from_solutions, faces_from_tasks, hands_from_solutions, hands_from_tasks  # noqa: E402
from gesturebooth.types import GestureSymbol  # noqa: E402


def _lm(x, y, z=0.0):
    return SimpleNamespace(x=x, y=y, z=z)


def _hand_landmarks():
    return [_lm(0.1 + i * 0.01, 0.2 + i * 0.02) for i in range(21)]


def test_hands_from_tasks():
    result = SimpleNamespace(
        hand_landmarks=[_hand_landmarks()],
        handedness=[[SimpleNamespace(category_name="Left", score=0.93)]],
    )
    hands = hands_from_tasks(result)
    assert len(hands) == 1
    hand = hands[0]
    assert hand.handedness == "Left"
    assert hand.handedness_score == pytest.approx(0.93)
    assert len(hand.landmarks) == 21
    assert hand.landmarks[8].x == pytest.approx(0.18)
    assert hand.bbox.x == pytest.approx(0.1)
    assert hand.bbox.height == pytest.approx(0.4)
    assert hand.gesture == GestureSymbol.UNKNOWN


def test_hands_from_tasks_without_handedness():
    hands = hands_from_tasks(SimpleNamespace(hand_landmarks=[_hand_landmarks()], handedness=[]))
    assert hands[0].handedness is None
    assert hands[0].handedness_score is None


def test_hands_from_solutions():
    classification = SimpleNamespace(classification=[SimpleNamespace(label="Right", score=0.8)])
    results = SimpleNamespace(
        multi_hand_landmarks=[SimpleNamespace(landmark=_hand_landmarks())],
        multi_handedness=[classification],
    )
    hands = hands_from_solutions(results)
    assert hands[0].handedness == "Right"
    assert hands[0].landmarks[0].y == pytest.approx(0.2)


def test_empty_results():
    assert hands_from_solutions(SimpleNamespace(multi_hand_landmarks=None, multi_handedness=None)) == []
    assert hands_from_tasks(SimpleNamespace(hand_landmarks=[], handedness=[])) == []
    assert faces_from_solutions(SimpleNamespace(multi_face_landmarks=None)) == []


def test_faces_get_bbox_and_pose():
    mesh = [_lm(0.4 + (i % 10) * 0.01, 0.3 + (i % 7) * 0.02) for i in range(478)]
    faces = faces_from_tasks(SimpleNamespace(face_landmarks=[mesh]))
    assert len(faces) == 1
    assert faces[0].bbox is not None
    assert faces[0].pose is not None

    small = faces_from_tasks(SimpleNamespace(face_landmarks=[mesh[:50]]))
    assert small[0].pose is None
