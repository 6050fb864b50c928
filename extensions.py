"""Flask extension instances, bound to an app by the factory."""

from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

cors = CORS()
migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address)
