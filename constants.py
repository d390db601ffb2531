"""Application constants."""

# HTTP client
USER_AGENT = "canvas-tui/0.1.0"
DEFAULT_PER_PAGE = 50
ANNOUNCEMENTS_PER_PAGE = 25
DEFAULT_RETRY_AFTER = 1.0

# Sync pass
CALENDAR_WINDOW_DAYS = 30
UPCOMING_WINDOW_DAYS = 30
UNNAMED_COURSE = "Unnamed"

# Calendar item kinds
KIND_EVENT = "event"
KIND_ASSIGNMENT = "assignment"

# Submission workflow states reported by Canvas
STATE_GRADED = "graded"
STATE_SUBMITTED = "submitted"

# Submission labels shown in the kind picker
SUBMISSION_KIND_LABELS = {
    'online_text_entry': 'Text Entry',
    'online_url': 'Website URL',
    'online_upload': 'File Upload',
}

# File uploads
DEFAULT_FILE_PARAM = "file"
DEFAULT_CONTENT_TYPE = "application/octet-stream"
MIME_TYPES = {
    'pdf': 'application/pdf',
    'doc': 'application/msword',
    'docx': 'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'xls': 'application/vnd.ms-excel',
    'xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'ppt': 'application/vnd.ms-powerpoint',
    'pptx': 'application/vnd.openxmlformats-officedocument.presentationml.presentation',
    'txt': 'text/plain',
    'md': 'text/markdown',
    'csv': 'text/csv',
    'html': 'text/html',
    'htm': 'text/html',
    'json': 'application/json',
    'xml': 'application/xml',
    'py': 'text/x-python',
    'java': 'text/x-java-source',
    'c': 'text/x-c',
    'cpp': 'text/x-c++',
    'h': 'text/x-c',
    'js': 'text/javascript',
    'ts': 'text/plain',
    'rs': 'text/plain',
    'ipynb': 'application/x-ipynb+json',
    'png': 'image/png',
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'gif': 'image/gif',
    'svg': 'image/svg+xml',
    'zip': 'application/zip',
    'tar': 'application/x-tar',
    'gz': 'application/gzip',
    'mp3': 'audio/mpeg',
    'mp4': 'video/mp4',
}

# External editor
DEFAULT_EDITOR = "vi"
