"""Text-to-speech chunking and sequential playback.

Speech output itself is delegated to an engine object (a browser bridge, a
local synthesizer, a recorder in tests). The player only decides what to
say next and keeps track of where it is.
"""

import logging
import re
import textwrap
from dataclasses import dataclass, replace
from typing import Callable, Protocol

from thinkable.adaptive.presets import support_profile

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHUNK_LENGTH = 200
SENTENCE_SPLIT = re.compile(r'[.!?]+')


@dataclass(frozen=True)
class TTSSettings:
    rate: float = 1.0
    volume: float = 1.0
    pitch: float = 1.0
    voice: str | None = None
    word_highlighting: bool = True
    pause_on_punctuation: bool = False


@dataclass
class TTSState:
    is_playing: bool = False
    is_paused: bool = False
    current_text: str = ''
    current_position: int = 0
    total_length: int = 0
    chunk_index: int = 0
    chunk_count: int = 0
    error: str | None = None


PRESET_TTS_SETTINGS = {
    'ADHD_SUPPORT': {'rate': 0.9, 'pause_on_punctuation': True, 'word_highlighting': True},
    'DYSLEXIA_SUPPORT': {'rate': 0.8, 'word_highlighting': True, 'pause_on_punctuation': True},
    'AUTISM_SUPPORT': {'rate': 1.0, 'pause_on_punctuation': False, 'word_highlighting': False},
    'SENSORY_CALM': {'rate': 0.7, 'volume': 0.8, 'pause_on_punctuation': True},
}
DEFAULT_TTS_OVERRIDES = {'rate': 1.0, 'volume': 1.0, 'pause_on_punctuation': False, 'word_highlighting': True}


def optimize_settings_for_preset(settings: TTSSettings, preset: str | None) -> TTSSettings:
    profile = support_profile(preset)
    if profile == 'READING_SUPPORT':
        profile = 'DYSLEXIA_SUPPORT'
    return replace(settings, **PRESET_TTS_SETTINGS.get(profile, DEFAULT_TTS_OVERRIDES))


def _split_long_sentence(sentence: str, width: int) -> list[str]:
    return textwrap.wrap(sentence, width=width, break_long_words=True, break_on_hyphens=False)


def chunk_text(text: str, max_length: int = DEFAULT_MAX_CHUNK_LENGTH) -> list[str]:
    """Split ``text`` into speakable chunks no longer than ``max_length``.

    Sentences are re-joined with ". " and every chunk built from sentences
    ends with a period. A sentence that cannot fit on its own is wrapped at
    word boundaries. Text with no sentence content, such as a run of
    punctuation, is wrapped as it stands.
    """
    if max_length < 2:
        raise ValueError('max_length must be at least 2')
    if not text or not text.strip():
        return []
    if len(text) <= max_length:
        return [text]

    sentences = [piece.strip() for piece in SENTENCE_SPLIT.split(text) if piece.strip()]
    chunks: list[str] = []
    current = ''

    for sentence in sentences:
        if len(sentence) + 1 > max_length:
            if current:
                chunks.append(current + '.')
                current = ''
            pieces = _split_long_sentence(sentence, max_length - 1)
            chunks.extend(pieces[:-1])
            current = pieces[-1]
            continue

        if not current:
            current = sentence
        elif len(current) + 2 + len(sentence) + 1 <= max_length:
            current = f'{current}. {sentence}'
        else:
            chunks.append(current + '.')
            current = sentence

    if current:
        chunks.append(current + '.')

    return chunks or _split_long_sentence(text.strip(), max_length)


def chunk_offsets(chunks: list[str]) -> list[int]:
    offsets = []
    position = 0
    for chunk in chunks:
        offsets.append(position)
        position += len(chunk)
    return offsets


class SpeechEngine(Protocol):
    def speak(
        self,
        text: str,
        settings: TTSSettings,
        on_start: Callable[[], None],
        on_end: Callable[[], None],
        on_boundary: Callable[[int], None],
        on_error: Callable[[str], None],
    ) -> None:
        ...

    def pause(self) -> None:
        ...

    def resume(self) -> None:
        ...

    def cancel(self) -> None:
        ...


class TextToSpeechPlayer:
    def __init__(
        self,
        engine: SpeechEngine,
        settings: TTSSettings | None = None,
        max_chunk_length: int = DEFAULT_MAX_CHUNK_LENGTH,
    ):
        self.engine = engine
        self.settings = settings or TTSSettings()
        self.max_chunk_length = max_chunk_length
        self._state = TTSState()
        self._chunks: list[str] = []
        self._offsets: list[int] = []
        self._listeners: list[Callable[[TTSState], None]] = []
        # Callbacks from an utterance that was cancelled must not move playback.
        self._generation = 0

    @property
    def chunks(self) -> list[str]:
        return list(self._chunks)

    def get_state(self) -> TTSState:
        return replace(self._state)

    def subscribe(self, listener: Callable[[TTSState], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def update_settings(self, **changes) -> TTSSettings:
        self.settings = replace(self.settings, **changes)
        self._notify()
        return self.settings

    def apply_preset_optimizations(self, preset: str | None) -> TTSSettings:
        self.settings = optimize_settings_for_preset(self.settings, preset)
        self._notify()
        return self.settings

    def speak(self, text: str) -> None:
        self.stop()

        self._state.current_text = text
        self._state.total_length = len(text)
        self._state.current_position = 0
        self._state.error = None

        self._chunks = chunk_text(text, self.max_chunk_length)
        self._offsets = chunk_offsets(self._chunks)
        self._state.chunk_index = 0
        self._state.chunk_count = len(self._chunks)

        self._speak_current()

    def pause(self) -> None:
        if self._state.is_playing and not self._state.is_paused:
            self.engine.pause()
            self._state.is_paused = True
            self._notify()

    def resume(self) -> None:
        if self._state.is_paused:
            self.engine.resume()
            self._state.is_paused = False
            self._notify()

    def stop(self) -> None:
        self._generation += 1
        self.engine.cancel()
        self._state.is_playing = False
        self._state.is_paused = False
        self._state.current_position = 0
        self._state.chunk_index = 0
        self._chunks = []
        self._offsets = []
        self._notify()

    def skip_forward(self) -> None:
        if self._state.is_playing and len(self._chunks) > 1:
            self._jump_to(min(self._state.chunk_index + 1, len(self._chunks) - 1))

    def skip_backward(self) -> None:
        if self._state.is_playing and len(self._chunks) > 1:
            self._jump_to(max(self._state.chunk_index - 1, 0))

    def _jump_to(self, index: int) -> None:
        self._generation += 1
        self.engine.cancel()
        self._state.chunk_index = index
        self._state.current_position = min(self._offsets[index], self._state.total_length)
        self._speak_current()

    def _speak_current(self) -> None:
        index = self._state.chunk_index
        if index >= len(self._chunks):
            self._on_complete()
            return

        generation = self._generation

        def on_start() -> None:
            if generation != self._generation:
                return
            self._state.is_playing = True
            self._state.is_paused = False
            self._notify()

        def on_end() -> None:
            if generation != self._generation:
                return
            self._generation += 1
            self._state.chunk_index += 1
            self._speak_current()

        def on_boundary(char_index: int) -> None:
            if generation != self._generation or not self.settings.word_highlighting:
                return
            # Offsets count chunk characters, which can run past the source text.
            self._state.current_position = min(self._offsets[index] + char_index, self._state.total_length)
            self._notify()

        def on_error(error: str) -> None:
            if generation != self._generation:
                return
            logger.error('TTS error: %s', error)
            self._state.error = error
            self._state.is_playing = False
            self._notify()

        self.engine.speak(self._chunks[index], self.settings, on_start, on_end, on_boundary, on_error)

    def _on_complete(self) -> None:
        self._state.is_playing = False
        self._state.is_paused = False
        self._state.current_position = self._state.total_length
        self._state.chunk_index = 0
        self._chunks = []
        self._offsets = []
        self._notify()

    def _notify(self) -> None:
        snapshot = self.get_state()
        for listener in list(self._listeners):
            listener(snapshot)
