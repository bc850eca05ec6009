# core/constants.py
import enum
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional

MB = 1024 * 1024
DEFAULT_MAX_FILE_SIZE = 50 * MB


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"
    MODERATOR = "moderator"


class FileLevel(str, enum.Enum):
    L100 = "100"
    L200 = "200"
    L300 = "300"
    L400 = "400"
    L500 = "500"
    L600 = "600"
    GENERAL = "general"


class Semester(str, enum.Enum):
    FIRST = "first"
    SECOND = "second"
    SUMMER = "summer"
    GENERAL = "general"


class FileStatus(str, enum.Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"
    DELETED = "deleted"
    PROCESSING = "processing"  # still being transcoded/validated


class TypeCategory(str, enum.Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    PRESENTATION = "presentation"
    SPREADSHEET = "spreadsheet"
    ARCHIVE = "archive"
    OTHER = "other"


# Checked in order; the first table containing the extension wins.
TYPE_CATEGORY_EXTENSIONS: Dict[TypeCategory, FrozenSet[str]] = {
    TypeCategory.IMAGE: frozenset({"jpg", "jpeg", "png", "gif", "bmp", "svg", "webp"}),
    TypeCategory.VIDEO: frozenset({"mp4", "avi", "mov", "wmv", "flv", "webm", "mkv"}),
    TypeCategory.AUDIO: frozenset({"mp3", "wav", "flac", "aac", "ogg", "wma"}),
    TypeCategory.DOCUMENT: frozenset({"pdf", "doc", "docx", "txt", "rtf", "odt"}),
    TypeCategory.PRESENTATION: frozenset({"ppt", "pptx", "odp"}),
    TypeCategory.SPREADSHEET: frozenset({"xls", "xlsx", "ods", "csv"}),
    TypeCategory.ARCHIVE: frozenset({"zip", "rar", "7z", "tar", "gz"}),
}

MULTIMEDIA_CATEGORIES = ("videos", "audio", "images")


@dataclass(frozen=True)
class RepositoryCategory:
    name: str
    label: str
    description: str
    icon: str
    color: str
    allowed_file_types: List[str] = field(default_factory=list)
    max_file_size: int = DEFAULT_MAX_FILE_SIZE


@dataclass(frozen=True)
class RepositoryDepartment:
    code: str
    name: str
    description: str
    levels: List[str] = field(default_factory=list)


REPOSITORY_CATEGORIES: List[RepositoryCategory] = [
    RepositoryCategory(
        "past-questions", "Past Questions", "Previous examination questions and solutions",
        "clipboard-check", "#3B82F6",
        ["pdf", "doc", "docx", "txt", "jpg", "jpeg", "png"], 50 * MB,
    ),
    RepositoryCategory(
        "textbooks", "Textbooks", "Course textbooks and reference materials",
        "book-open", "#10B981",
        ["pdf", "epub", "mobi", "doc", "docx"], 100 * MB,
    ),
    RepositoryCategory(
        "slides", "Slides", "Lecture slides and presentations",
        "presentation-chart-line", "#F59E0B",
        ["ppt", "pptx", "pdf", "key"], 50 * MB,
    ),
    RepositoryCategory(
        "tutorials", "Tutorials", "Tutorial materials and guides",
        "academic-cap", "#8B5CF6",
        ["pdf", "doc", "docx", "txt", "mp4", "avi", "mov"], 200 * MB,
    ),
    RepositoryCategory(
        "research", "Research", "Research papers and publications",
        "light-bulb", "#EF4444",
        ["pdf", "doc", "docx", "txt", "bib"], 50 * MB,
    ),
    RepositoryCategory(
        "final-year-projects", "Final Year Projects", "Final year project reports and documentation",
        "academic-cap", "#8B5CF6",
        ["pdf", "doc", "docx", "txt", "zip", "rar", "ppt", "pptx"], 100 * MB,
    ),
    RepositoryCategory(
        "articles", "Articles", "Academic articles and journals",
        "document-text", "#06B6D4",
        ["pdf", "doc", "docx", "txt", "html"], 30 * MB,
    ),
    RepositoryCategory(
        "presentations", "Presentations", "Student and faculty presentations",
        "presentation-chart-line", "#84CC16",
        ["ppt", "pptx", "pdf", "key", "mp4"], 100 * MB,
    ),
    RepositoryCategory(
        "journals", "Journals", "Academic journals and publications",
        "book-open", "#F97316",
        ["pdf", "doc", "docx", "txt"], 50 * MB,
    ),
    RepositoryCategory(
        "videos", "Videos", "Educational videos and lectures",
        "video-camera", "#EC4899",
        ["mp4", "avi", "mov", "wmv", "flv", "webm", "mkv"], 500 * MB,
    ),
    RepositoryCategory(
        "audio", "Audio", "Audio lectures and podcasts",
        "speakerphone", "#6366F1",
        ["mp3", "wav", "flac", "aac", "ogg", "wma"], 100 * MB,
    ),
    RepositoryCategory(
        "images", "Images", "Educational images and diagrams",
        "photograph", "#14B8A6",
        ["jpg", "jpeg", "png", "gif", "bmp", "svg", "webp"], 20 * MB,
    ),
    RepositoryCategory(
        "documents", "Documents", "General documents and files",
        "document-text", "#6B7280",
        ["pdf", "doc", "docx", "txt", "rtf", "odt"], 50 * MB,
    ),
    RepositoryCategory(
        "software", "Software", "Software tools and applications",
        "code", "#059669",
        ["exe", "msi", "dmg", "pkg", "deb", "rpm", "zip", "rar"], 500 * MB,
    ),
    RepositoryCategory(
        "datasets", "Datasets", "Data files and datasets",
        "chart-bar", "#7C3AED",
        ["csv", "xls", "xlsx", "json", "xml", "sql", "zip", "rar"], 200 * MB,
    ),
    RepositoryCategory(
        "templates", "Templates", "Document and project templates",
        "template", "#DC2626",
        ["doc", "docx", "ppt", "pptx", "xls", "xlsx", "zip", "rar"], 50 * MB,
    ),
]

_ALL_LEVELS = ["100", "200", "300", "400", "500", "600"]

REPOSITORY_DEPARTMENTS: List[RepositoryDepartment] = [
    RepositoryDepartment("cs", "Computer Science", "Computer Science and Information Technology", _ALL_LEVELS),
    RepositoryDepartment("se", "Software Engineering", "Software Engineering and Development", _ALL_LEVELS),
    RepositoryDepartment("it", "Information Technology", "Information Technology and Systems", _ALL_LEVELS),
    RepositoryDepartment("ce", "Computer Engineering", "Computer Engineering and Hardware", _ALL_LEVELS),
    RepositoryDepartment("general", "General", "General academic materials", ["general"]),
]

_CATEGORIES_BY_NAME = {c.name: c for c in REPOSITORY_CATEGORIES}
_DEPARTMENTS_BY_CODE = {d.code: d for d in REPOSITORY_DEPARTMENTS}


def get_category(name: Optional[str]) -> Optional[RepositoryCategory]:
    if not name:
        return None
    return _CATEGORIES_BY_NAME.get(name)


def get_department(code: Optional[str]) -> Optional[RepositoryDepartment]:
    if not code:
        return None
    return _DEPARTMENTS_BY_CODE.get(code)


def get_allowed_file_types(category: Optional[str]) -> List[str]:
    cat = get_category(category)
    return list(cat.allowed_file_types) if cat else []


def get_max_file_size(category: Optional[str]) -> int:
    cat = get_category(category)
    return cat.max_file_size if cat else DEFAULT_MAX_FILE_SIZE
