from .auth_api import AuthApi
from .projects_api import ProjectsApi
from .admin_api import AdminApi

__all__ = ["AuthApi", "ProjectsApi", "AdminApi"]
