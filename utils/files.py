# utils/files.py
from typing import Optional

from core.constants import TYPE_CATEGORY_EXTENSIONS, Semester, TypeCategory

SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]

_SEMESTER_ALIASES = {
    "first": Semester.FIRST,
    "1st": Semester.FIRST,
    "1": Semester.FIRST,
    "harmattan": Semester.FIRST,
    "second": Semester.SECOND,
    "2nd": Semester.SECOND,
    "2": Semester.SECOND,
    "rain": Semester.SECOND,
    "summer": Semester.SUMMER,
}


def get_extension(filename: Optional[str]) -> str:
    """Lowercase text after the last dot, or '' when the name has none."""
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()


def classify(extension: Optional[str]) -> TypeCategory:
    ext = (extension or "").lower().lstrip(".")
    for category, extensions in TYPE_CATEGORY_EXTENSIONS.items():
        if ext in extensions:
            return category
    return TypeCategory.OTHER


def classify_filename(filename: Optional[str]) -> TypeCategory:
    return classify(get_extension(filename))


def _trim_number(value: float) -> str:
    text = f"{round(value, 2):.2f}".rstrip("0").rstrip(".")
    return text or "0"


def format_file_size(size: Optional[int]) -> str:
    if not size or size <= 0:
        return "0 Bytes"
    index = 0
    value = float(size)
    while value >= 1024 and index < len(SIZE_UNITS) - 1:
        value /= 1024
        index += 1
    return f"{_trim_number(value)} {SIZE_UNITS[index]}"


def format_duration(seconds: Optional[float]) -> str:
    if not seconds or seconds < 0:
        return "0:00"
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def normalize_semester(value: Optional[str]) -> str:
    key = (value or "").strip().lower()
    return _SEMESTER_ALIASES.get(key, Semester.GENERAL).value


def normalize_tags(tags) -> list:
    """Accept a comma separated string or a list; return trimmed lowercase tags."""
    if tags is None:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")
    return [t.strip().lower() for t in tags if t and t.strip()]


def course_info(code: Optional[str], title: Optional[str]) -> Optional[str]:
    if code and title:
        return f"{code} - {title}"
    return code or title or None
