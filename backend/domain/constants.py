from config import settings

# Prompt Classification
PHASES = ("Planning", "Design", "Implementation", "Debug", "Release", "Other")
PHASE_ALL = "All"
DEFAULT_PHASE = "Other"

VISIBILITY_PRIVATE = "Private"
VISIBILITY_PUBLIC = "Public"
VISIBILITIES = (VISIBILITY_PRIVATE, VISIBILITY_PUBLIC)
VISIBILITY_FILTER_ALL = "all"

RATINGS = ("good", "neutral", "bad")

# Store views / sort orders
VIEW_LIBRARY = "library"
VIEW_TREND = "trend"
VIEWS = (VIEW_LIBRARY, VIEW_TREND)
SORT_ORDERS = ("updated", "useCount", "likes", "title")

# Limits
PIN_LIMIT = settings.PIN_LIMIT
TEMPLATE_CACHE_LIMIT = settings.TEMPLATE_CACHE_LIMIT
COPY_BUFFER_MAX = settings.COPY_BUFFER_MAX
COPY_BUFFER_TTL_SEC = settings.COPY_BUFFER_TTL_SEC
RECENTLY_USED_LIMIT = 5

# Notifications
NOTIFICATION_TYPES = ("like", "favorite", "fork")

# Feedback / Contact / Changelog
FEEDBACK_TYPES = ("bug", "feature", "improvement", "other")
FEEDBACK_STATUSES = ("open", "in_progress", "done", "rejected")
CONTACT_STATUSES = ("new", "in_progress", "resolved")
CHANGELOG_TYPES = ("feature", "improvement", "fix")

# Storage buckets
AVATAR_BUCKET = "avatars"
SCREENSHOT_BUCKET = "screenshots"

# Analytics
ANALYTICS_EVENTS = (
    "page_view",
    "sign_up",
    "sign_in",
    "prompt_create",
    "prompt_copy",
    "prompt_publish",
    "prompt_like",
    "prompt_favorite",
    "search_execute",
    "feedback_submit",
    "prompt_edit",
    "prompt_delete",
)

# Local storage keys
TEMPLATE_VALUES_KEY = "myprompt-template-values"
CHAINS_KEY = "myprompt-chains"
THEME_KEY = "myprompt-theme"
PROGRESS_DISMISSED_KEY = "ob_progress_dismissed"
MILESTONE_IDS = ("visit", "create", "copy", "search", "like", "publish", "favorite")
