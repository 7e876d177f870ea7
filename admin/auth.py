import secrets

from sqladmin.authentication import AuthenticationBackend
from starlette.requests import Request
from core.config import settings


class AdminAuth(AuthenticationBackend):
    async def login(self, request: Request) -> bool:
        form = await request.form()
        username = form.get("username") or ""
        password = form.get("password") or ""

        # panel stays locked until both credentials are configured
        if not (settings.ADMIN_USERNAME and settings.ADMIN_PASSWORD):
            return False

        if secrets.compare_digest(username, settings.ADMIN_USERNAME) and secrets.compare_digest(
            password, settings.ADMIN_PASSWORD
        ):
            request.session["admin"] = True
            return True
        return False

    async def logout(self, request: Request) -> bool:
        request.session.clear()
        return True

    async def authenticate(self, request: Request) -> bool:
        return request.session.get("admin", False)
