from sqladmin import Admin, ModelView
from core.database import engine
from models import (
    User,
    WearableDevice,
    BloodPressureReading,
    Appointment,
    TriageAlert,
    UserCertificate,
    ContentPage,
    ProhmedCode,
)
from admin.auth import AdminAuth
from core.config import settings


class UserAdmin(ModelView, model=User):
    column_list = [User.id, User.email, User.role, User.subscription_tier, User.is_admin, User.is_active]
    column_searchable_list = [User.email, User.last_name]
    form_excluded_columns = [User.password_hash]


class WearableDeviceAdmin(ModelView, model=WearableDevice):
    column_list = "__all__"


class BloodPressureReadingAdmin(ModelView, model=BloodPressureReading):
    column_list = [
        BloodPressureReading.id,
        BloodPressureReading.user_id,
        BloodPressureReading.systolic,
        BloodPressureReading.diastolic,
        BloodPressureReading.heart_rate,
        BloodPressureReading.severity,
        BloodPressureReading.measurement_time,
    ]
    can_create = False


class AppointmentAdmin(ModelView, model=Appointment):
    column_list = "__all__"


class TriageAlertAdmin(ModelView, model=TriageAlert):
    column_list = "__all__"
    can_create = False


class UserCertificateAdmin(ModelView, model=UserCertificate):
    column_list = "__all__"
    can_create = False


class ContentPageAdmin(ModelView, model=ContentPage):
    column_list = [ContentPage.id, ContentPage.slug, ContentPage.title, ContentPage.placement, ContentPage.is_published]


class ProhmedCodeAdmin(ModelView, model=ProhmedCode):
    column_list = "__all__"
    column_searchable_list = [ProhmedCode.code]


def setup_admin(app):
    admin = Admin(
        app,
        engine,
        title=settings.APP_NAME,
        authentication_backend=AdminAuth(
            secret_key=settings.SECRET_KEY
        ),
    )

    for view in (
        UserAdmin,
        WearableDeviceAdmin,
        BloodPressureReadingAdmin,
        AppointmentAdmin,
        TriageAlertAdmin,
        UserCertificateAdmin,
        ContentPageAdmin,
        ProhmedCodeAdmin,
    ):
        admin.add_view(view)
    return admin
