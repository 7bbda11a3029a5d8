from saasresto.models.tenant import Tenant
from saasresto.models.user import User
from saasresto.models.session import UserSession
from saasresto.models.password_reset_token import PasswordResetToken
