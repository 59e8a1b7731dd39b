# Import moved models
from domain.models.prompt import Prompt, PromptHistory
from domain.models.engagement import Favorite, Like
from domain.models.folder import Folder
from domain.models.profile import Profile
from domain.models.notification import Notification
from domain.models.feedback import Feedback, FeedbackLike, Contact, ChangelogEntry
from domain.models.feature_flag import FeatureFlag
from domain.models.analytics import AnalyticsEvent, DailyKpi
