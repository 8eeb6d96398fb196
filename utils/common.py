# utils/common.py
"""Common utilities: path management and text helpers"""
import os
import re

# ⚠️ DO NOT import settings here - causes circular import with config.py


# ============= Path Management =============

def get_project_root() -> str:
    """Returns the absolute path to the project's root directory."""
    return os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))


def get_log_file_path() -> str:
    """Creates the log directory if it doesn't exist and returns the full log file path."""
    project_root = get_project_root()
    log_dir = os.path.join(project_root, 'log')

    if not os.path.exists(log_dir):
        os.makedirs(log_dir, exist_ok=True)

    return os.path.join(log_dir, 'chat_api.log')


# ============= Text Utilities =============

_NON_ALNUM_RUN = re.compile(r'[^a-z0-9]+')


def name_to_index(name: str) -> str:
    """Lower-case a name and collapse non-alphanumeric runs to single hyphens."""
    return _NON_ALNUM_RUN.sub('-', name.lower()).strip('-')


def truncate(text: str, limit: int) -> str:
    """Cut text to `limit` characters, marking the cut with an ellipsis."""
    if limit <= 0:
        return ""
    if len(text) <= limit:
        return text
    if limit <= 3:
        return text[:limit]
    return text[: limit - 3].rstrip() + "..."
