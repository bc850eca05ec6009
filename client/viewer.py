# client/viewer.py
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple, Union

from core.constants import TypeCategory
from client.types import RepositoryFile

CONTROLS_HIDE_DELAY = 3.0


@dataclass
class ImageView:
    file: RepositoryFile
    src: Optional[str]
    alt: str
    dimensions: Optional[str] = None
    fallback_icon: str = "🖼️"
    load_failed: bool = False

    def on_load_error(self) -> None:
        self.load_failed = True


@dataclass
class VideoView:
    file: RepositoryFile
    src: Optional[str]
    duration: Optional[str] = None
    resolution: Optional[str] = None
    player: "VideoPlayer" = None

    def __post_init__(self):
        if self.player is None:
            self.player = VideoPlayer(duration=self.file.duration or 0.0)


@dataclass
class AudioView:
    file: RepositoryFile
    src: Optional[str]
    duration: Optional[str] = None
    bitrate: str = "Unknown"


@dataclass
class DocumentView:
    file: RepositoryFile
    download_url: Optional[str]
    metadata: List[Tuple[str, str]] = field(default_factory=list)
    icon: str = "📄"
    action_label: str = "Download Document"


@dataclass
class OtherView:
    file: RepositoryFile
    download_url: Optional[str]
    icon: str = "📁"
    action_label: str = "Download File"


FileView = Union[ImageView, VideoView, AudioView, DocumentView, OtherView]


def _image(f: RepositoryFile) -> ImageView:
    dimensions = f"{f.width} × {f.height}" if f.width and f.height else None
    return ImageView(file=f, src=f.file_url, alt=f.file_name, dimensions=dimensions)


def _video(f: RepositoryFile) -> VideoView:
    return VideoView(file=f, src=f.file_url, duration=f.duration_label, resolution=f.resolution)


def _audio(f: RepositoryFile) -> AudioView:
    bitrate = f"{f.bitrate} kbps" if f.bitrate else "Unknown"
    return AudioView(file=f, src=f.file_url, duration=f.duration_label, bitrate=bitrate)


def _document(f: RepositoryFile) -> DocumentView:
    metadata = [("Size", f.size_label), ("Format", f.extension.upper())]
    if f.pages:
        metadata.append(("Pages", str(f.pages)))
    if f.language:
        metadata.append(("Language", f.language))
    return DocumentView(file=f, download_url=f.file_url, metadata=metadata)


def _other(f: RepositoryFile) -> OtherView:
    return OtherView(file=f, download_url=f.file_url)


_RENDERERS: Dict[TypeCategory, Callable[[RepositoryFile], FileView]] = {
    TypeCategory.IMAGE: _image,
    TypeCategory.VIDEO: _video,
    TypeCategory.AUDIO: _audio,
    TypeCategory.DOCUMENT: _document,
    TypeCategory.PRESENTATION: _other,
    TypeCategory.SPREADSHEET: _other,
    TypeCategory.ARCHIVE: _other,
    TypeCategory.OTHER: _other,
}

_missing = set(TypeCategory) - set(_RENDERERS)
if _missing:
    raise RuntimeError(f"No viewer registered for {sorted(c.value for c in _missing)}")


def build_view(repository_file: RepositoryFile) -> FileView:
    return _RENDERERS[repository_file.type_category](repository_file)


class VideoPlayer:
    """Playback state plus the auto-hiding control bar.

    Controls are shown on every pointer move and hidden once
    ``CONTROLS_HIDE_DELAY`` seconds pass without one.
    """

    def __init__(self, duration: float = 0.0, clock: Callable[[], float] = time.monotonic):
        self.duration = max(float(duration or 0.0), 0.0)
        self.clock = clock
        self.is_playing = False
        self.current_time = 0.0
        self.volume = 1.0
        self.is_muted = False
        self.is_fullscreen = False
        self._last_pointer_move = clock()

    def toggle_play(self) -> bool:
        self.is_playing = not self.is_playing
        return self.is_playing

    def ended(self) -> None:
        self.is_playing = False
        self.current_time = self.duration

    def seek(self, seconds: float) -> float:
        seconds = max(float(seconds), 0.0)
        if self.duration:
            seconds = min(seconds, self.duration)
        self.current_time = seconds
        return self.current_time

    def set_volume(self, volume: float) -> float:
        self.volume = min(max(float(volume), 0.0), 1.0)
        self.is_muted = self.volume == 0.0
        return self.volume

    def toggle_mute(self) -> bool:
        self.is_muted = not self.is_muted
        return self.is_muted

    def toggle_fullscreen(self) -> bool:
        self.is_fullscreen = not self.is_fullscreen
        return self.is_fullscreen

    def pointer_moved(self) -> None:
        self._last_pointer_move = self.clock()

    @property
    def controls_visible(self) -> bool:
        return self.clock() - self._last_pointer_move < CONTROLS_HIDE_DELAY

    @property
    def progress(self) -> float:
        return self.current_time / self.duration if self.duration else 0.0
