from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np

from .errors import ConfigurationError
from .events import GESTURE_ARMED, GESTURE_COUNTDOWN, HOVER_ENTER, PRESS, EventBus


logger = logging.getLogger(__name__)

# cue name -> (MIDI notes played in sequence, duration of each note in ms)
CUES: Dict[str, Tuple[List[int], float]] = {
    "hover": ([84], 40.0),
    "press": ([72, 79], 60.0),
    "tick": ([76], 80.0),
    "armed": ([72, 76, 79, 84], 70.0),
}


def midi_to_freq(midi_note: int) -> float:
    """Convert MIDI note number to frequency in Hz."""
    return 440.0 * (2.0 ** ((midi_note - 69) / 12.0))


def render_cue(name: str, sample_rate: int = 44100, volume: float = 0.3) -> np.ndarray:
    """
    Render a named cue as mono float32 samples.

    Each note is a sine burst with a short linear fade in/out to avoid clicks.
    """
    if name not in CUES:
        raise ConfigurationError(f"Unknown cue '{name}'. Available: {list(CUES.keys())}")
    notes, note_ms = CUES[name]
    n = max(1, int(sample_rate * note_ms / 1000.0))
    fade = min(n // 2, max(1, int(sample_rate * 0.005)))
    envelope = np.ones(n, dtype=np.float64)
    envelope[:fade] = np.linspace(0.0, 1.0, fade)
    envelope[-fade:] = np.linspace(1.0, 0.0, fade)
    t = np.arange(n) / sample_rate
    parts = [volume * envelope * np.sin(2 * np.pi * midi_to_freq(note) * t) for note in notes]
    return np.concatenate(parts).astype(np.float32)


class CuePlayer:
    """
    Short audible cues for interaction events.

    Cues are pre-rendered and mixed into a single sounddevice output stream;
    a new cue replaces whatever is still playing.
    """

    def __init__(
        self,
        sample_rate: int = 44100,
        volume: float = 0.3,
        stream_factory: Optional[Callable[..., Any]] = None,
    ) -> None:
        self.sample_rate = sample_rate
        self.volume = max(0.0, min(1.0, volume))
        self._cues = {name: render_cue(name, sample_rate, self.volume) for name in CUES}
        self._stream_factory = stream_factory
        self._stream: Optional[Any] = None
        self._lock = threading.Lock()
        self._buffer: Optional[np.ndarray] = None
        self._pos = 0

    def start(self) -> None:
        """Start the audio stream."""
        if self._stream is not None:
            return
        factory = self._stream_factory
        if factory is None:
            import sounddevice as sd

            factory = sd.OutputStream
        self._stream = factory(
            samplerate=self.sample_rate,
            channels=1,
            callback=self._audio_callback,
            blocksize=512,
        )
        self._stream.start()

    def stop(self) -> None:
        """Stop the audio stream."""
        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None

    def play(self, name: str) -> None:
        if name not in self._cues:
            raise ConfigurationError(f"Unknown cue '{name}'. Available: {list(self._cues.keys())}")
        with self._lock:
            self._buffer = self._cues[name]
            self._pos = 0

    def bind(self, events: EventBus) -> List[Callable[[], None]]:
        """Play cues for hover/press/countdown/armed events; returns unsubscribers."""
        return [
            events.on(HOVER_ENTER, lambda target_id, pointer: self.play("hover")),
            events.on(PRESS, lambda target_id, pointer: self.play("press")),
            events.on(GESTURE_COUNTDOWN, lambda seconds: self.play("tick")),
            events.on(GESTURE_ARMED, lambda: self.play("armed")),
        ]

    def _audio_callback(self, outdata, frames, time_info, status) -> None:
        """
        Audio callback for sounddevice stream.

        Args:
            outdata: Output buffer to fill with audio samples
            frames: Number of frames to generate
            time_info: Timing information from the audio system
            status: Stream status flags indicating errors or warnings
        """
        if status:
            logger.debug("Audio stream status: %s", status)
        with self._lock:
            outdata[:] = 0
            if self._buffer is None:
                return
            chunk = self._buffer[self._pos:self._pos + frames]
            outdata[: len(chunk), 0] = chunk
            self._pos += len(chunk)
            if self._pos >= len(self._buffer):
                self._buffer = None
                self._pos = 0

    def __enter__(self) -> "CuePlayer":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
