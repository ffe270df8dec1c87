"""
Heuristic gesture classification from a single hand's 21 landmarks.

A finger counts as extended when its tip sits above its pip joint (smaller y)
in detector space. The decision table is evaluated top to bottom and the first
matching rule wins, so rule order is part of the contract.
"""

from __future__ import annotations

import dataclasses
from typing import Callable, Dict, List, Tuple

from .landmarks import FINGER_JOINTS, is_well_formed
from .types import GestureSymbol, HandObservation


FingerStates = Dict[str, bool]
GestureRule = Tuple[Callable[[FingerStates], bool], GestureSymbol]


def finger_states(hand: HandObservation) -> FingerStates:
    """Extended/retracted per finger. Assumes a well-formed hand."""
    lms = hand.landmarks
    return {name: lms[tip].y < lms[pip].y for name, (tip, pip, _mcp) in FINGER_JOINTS.items()}


def _point(f: FingerStates) -> bool:
    return f["index"] and not f["middle"] and not f["ring"] and not f["pinky"]


def _peace(f: FingerStates) -> bool:
    return f["index"] and f["middle"] and not f["ring"] and not f["pinky"]


def _open(f: FingerStates) -> bool:
    return f["thumb"] and f["index"] and f["middle"] and f["ring"] and f["pinky"]


def _fist(f: FingerStates) -> bool:
    return not (f["thumb"] or f["index"] or f["middle"] or f["ring"] or f["pinky"])


def _thumbs_up(f: FingerStates) -> bool:
    return f["thumb"] and f["index"] and not f["middle"] and not f["ring"] and not f["pinky"]


GESTURE_RULES: List[GestureRule] = [
    (_point, GestureSymbol.POINT),
    (_peace, GestureSymbol.PEACE),
    (_open, GestureSymbol.OPEN),
    (_fist, GestureSymbol.FIST),
    (_thumbs_up, GestureSymbol.THUMBS_UP),
]


def classify(hand: HandObservation) -> GestureSymbol:
    if not is_well_formed(hand):
        return GestureSymbol.UNKNOWN
    states = finger_states(hand)
    for predicate, symbol in GESTURE_RULES:
        if predicate(states):
            return symbol
    return GestureSymbol.UNKNOWN


def annotate(hand: HandObservation) -> HandObservation:
    """Copy of ``hand`` carrying its classified gesture."""
    return dataclasses.replace(hand, gesture=classify(hand))
