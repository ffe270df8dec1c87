from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

import cv2

from .errors import DetectorError, ModelAssetError
from .landmarks import estimate_face_pose
from .model_assets import ensure_face_landmarker_task, ensure_hand_landmarker_task
from .types import DetectionFrame, FaceObservation, HandObservation, LandmarkPoint
from .utils import bbox_from_points


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _SolutionsBackend:
    mp: object
    hands: object
    face_mesh: Optional[object]


@dataclass(frozen=True)
class _TasksBackend:
    mp: object
    hand_landmarker: object
    face_landmarker: Optional[object]


def _points(landmarks: Sequence[Any]) -> tuple:
    return tuple(
        LandmarkPoint(x=float(lm.x), y=float(lm.y), z=float(getattr(lm, "z", 0.0) or 0.0)) for lm in landmarks
    )


def build_hand(landmarks: Sequence[Any], label: Optional[str], score: Optional[float]) -> HandObservation:
    points = _points(landmarks)
    return HandObservation(
        landmarks=points,
        handedness=label,
        handedness_score=score,
        bbox=bbox_from_points(points),
    )


def build_face(landmarks: Sequence[Any]) -> FaceObservation:
    points = _points(landmarks)
    return FaceObservation(landmarks=points, bbox=bbox_from_points(points), pose=estimate_face_pose(points))


def hands_from_solutions(results: Any) -> List[HandObservation]:
    """Convert `mp.solutions.hands` output."""
    multi = getattr(results, "multi_hand_landmarks", None) or []
    handedness_list = getattr(results, "multi_handedness", None) or []
    hands: List[HandObservation] = []
    for i, hand_landmarks in enumerate(multi):
        label: Optional[str] = None
        score: Optional[float] = None
        if i < len(handedness_list) and handedness_list[i].classification:
            c = handedness_list[i].classification[0]
            label = getattr(c, "label", None)
            score = float(getattr(c, "score", 0.0))
        hands.append(build_hand(hand_landmarks.landmark, label, score))
    return hands


def hands_from_tasks(result: Any) -> List[HandObservation]:
    """Convert a Tasks `HandLandmarkerResult`."""
    hand_landmarks_list = getattr(result, "hand_landmarks", None) or []
    handedness_list = getattr(result, "handedness", None) or []
    hands: List[HandObservation] = []
    for i, landmarks in enumerate(hand_landmarks_list):
        label = None
        score = None
        if i < len(handedness_list) and handedness_list[i]:
            cat0 = handedness_list[i][0]
            label = getattr(cat0, "category_name", None) or getattr(cat0, "display_name", None)
            score = float(getattr(cat0, "score", 0.0))
        hands.append(build_hand(landmarks, label, score))
    return hands


def faces_from_solutions(results: Any) -> List[FaceObservation]:
    multi = getattr(results, "multi_face_landmarks", None) or []
    return [build_face(face.landmark) for face in multi]


def faces_from_tasks(result: Any) -> List[FaceObservation]:
    return [build_face(landmarks) for landmarks in (getattr(result, "face_landmarks", None) or [])]


def _try_create_solutions_backend(
    static_image_mode: bool,
    max_num_hands: int,
    max_num_faces: int,
    model_complexity: int,
    min_detection_confidence: float,
    min_tracking_confidence: float,
) -> Optional[_SolutionsBackend]:
    import mediapipe as mp  # type: ignore

    if not hasattr(mp, "solutions"):
        return None
    hands = mp.solutions.hands.Hands(
        static_image_mode=static_image_mode,
        max_num_hands=max_num_hands,
        model_complexity=model_complexity,
        min_detection_confidence=min_detection_confidence,
        min_tracking_confidence=min_tracking_confidence,
    )
    face_mesh = None
    if max_num_faces > 0:
        face_mesh = mp.solutions.face_mesh.FaceMesh(
            static_image_mode=static_image_mode,
            max_num_faces=max_num_faces,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )
    return _SolutionsBackend(mp=mp, hands=hands, face_mesh=face_mesh)


def _try_create_tasks_backend(
    hand_model_path: str,
    face_model_path: str,
    max_num_hands: int,
    max_num_faces: int,
    min_detection_confidence: float,
    min_tracking_confidence: float,
) -> _TasksBackend:
    """
    Fallback for MediaPipe distributions that do not include `mp.solutions`.

    Uses the Tasks HandLandmarker / FaceLandmarker APIs, which need `.task` model assets on disk.
    """

    import mediapipe as mp  # type: ignore
    from mediapipe.tasks.python import BaseOptions  # type: ignore
    from mediapipe.tasks.python import vision  # type: ignore

    hand_landmarker = vision.HandLandmarker.create_from_options(
        vision.HandLandmarkerOptions(
            base_options=BaseOptions(model_asset_path=ensure_hand_landmarker_task(hand_model_path)),
            running_mode=vision.RunningMode.VIDEO,
            num_hands=max_num_hands,
            min_hand_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )
    )
    face_landmarker = None
    if max_num_faces > 0:
        face_landmarker = vision.FaceLandmarker.create_from_options(
            vision.FaceLandmarkerOptions(
                base_options=BaseOptions(model_asset_path=ensure_face_landmarker_task(face_model_path)),
                running_mode=vision.RunningMode.VIDEO,
                num_faces=max_num_faces,
                min_face_detection_confidence=min_detection_confidence,
                min_tracking_confidence=min_tracking_confidence,
            )
        )
    return _TasksBackend(mp=mp, hand_landmarker=hand_landmarker, face_landmarker=face_landmarker)


class LandmarkDetector:
    """
    Hand and face landmark detection using MediaPipe.

    Input frames are expected as **BGR** images (OpenCV default) straight from
    the camera, i.e. *not* mirrored; mirroring happens in the viewport mapping.
    """

    def __init__(
        self,
        static_image_mode: bool = False,
        max_num_hands: int = 2,
        max_num_faces: int = 1,
        model_complexity: int = 1,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        hand_model_path: str = "models/hand_landmarker.task",
        face_model_path: str = "models/face_landmarker.task",
    ) -> None:
        self._solutions: Optional[_SolutionsBackend] = _try_create_solutions_backend(
            static_image_mode=static_image_mode,
            max_num_hands=max_num_hands,
            max_num_faces=max_num_faces,
            model_complexity=model_complexity,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )
        self._tasks: Optional[_TasksBackend] = None
        self._timestamp_ms = 0

        if self._solutions is not None:
            logger.info("Using MediaPipe solutions backend")
            return

        try:
            self._tasks = _try_create_tasks_backend(
                hand_model_path=hand_model_path,
                face_model_path=face_model_path,
                max_num_hands=max_num_hands,
                max_num_faces=max_num_faces,
                min_detection_confidence=min_detection_confidence,
                min_tracking_confidence=min_tracking_confidence,
            )
        except ModelAssetError:
            raise
        except Exception as e:  # pragma: no cover
            raise DetectorError(
                "Could not initialize MediaPipe.\n"
                "Your installed `mediapipe` package does not expose `mp.solutions`, and the Tasks fallback\n"
                f"could not be initialized: {e}"
            ) from e
        logger.info("Using MediaPipe Tasks backend")

    def close(self) -> None:
        if self._solutions is not None:
            self._solutions.hands.close()
            if self._solutions.face_mesh is not None:
                self._solutions.face_mesh.close()
        if self._tasks is not None:
            self._tasks.hand_landmarker.close()
            if self._tasks.face_landmarker is not None:
                self._tasks.face_landmarker.close()

    def __enter__(self) -> "LandmarkDetector":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _next_timestamp(self, timestamp_ms: Optional[float]) -> int:
        # Tasks VIDEO mode requires strictly increasing integer timestamps.
        if timestamp_ms is None:
            ts = self._timestamp_ms + 33  # ~30fps
        else:
            ts = max(int(timestamp_ms), self._timestamp_ms + 1)
        self._timestamp_ms = ts
        return ts

    def detect(self, frame_bgr, timestamp_ms: Optional[float] = None) -> DetectionFrame:
        ts = self._next_timestamp(timestamp_ms)
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)

        if self._solutions is not None:
            hands = hands_from_solutions(self._solutions.hands.process(frame_rgb))
            faces: List[FaceObservation] = []
            if self._solutions.face_mesh is not None:
                faces = faces_from_solutions(self._solutions.face_mesh.process(frame_rgb))
            return DetectionFrame(timestamp_ms=float(ts), hands=hands, faces=faces)

        if self._tasks is None:
            return DetectionFrame(timestamp_ms=float(ts))

        mp = self._tasks.mp
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=frame_rgb)
        hands = hands_from_tasks(self._tasks.hand_landmarker.detect_for_video(mp_image, ts))
        faces = []
        if self._tasks.face_landmarker is not None:
            faces = faces_from_tasks(self._tasks.face_landmarker.detect_for_video(mp_image, ts))
        return DetectionFrame(timestamp_ms=float(ts), hands=hands, faces=faces)
