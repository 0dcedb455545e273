from appstore.models.profile import Profile
from appstore.models.category import Category
from appstore.models.app import App, AppScreenshot
from appstore.models.review import Review
from appstore.models.download import AppDownload
from appstore.models.developer_application import DeveloperApplication

__all__ = [
    "Profile",
    "Category",
    "App",
    "AppScreenshot",
    "Review",
    "AppDownload",
    "DeveloperApplication",
]
