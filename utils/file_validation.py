# utils/file_validation.py
from typing import List, Optional

from core.constants import get_allowed_file_types, get_max_file_size
from utils.files import format_file_size, get_extension

NO_CATEGORY_MESSAGE = "Please select a category first"


def validate_upload(filename: str, size: int, category: Optional[str]) -> List[str]:
    """Check a candidate upload against its category's rules.

    Returns a list of human readable errors, empty when the file is acceptable.
    The type and size checks are independent, so both messages may appear.
    """
    if not category:
        return [NO_CATEGORY_MESSAGE]

    errors: List[str] = []
    allowed = get_allowed_file_types(category)
    if get_extension(filename) not in allowed:
        errors.append(f"File type not allowed. Allowed types: {', '.join(allowed)}")

    max_size = get_max_file_size(category)
    if size > max_size:
        errors.append(f"File too large. Maximum size: {format_file_size(max_size)}")

    return errors


def is_valid_upload(filename: str, size: int, category: Optional[str]) -> bool:
    return not validate_upload(filename, size, category)
