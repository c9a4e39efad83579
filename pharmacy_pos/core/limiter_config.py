from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Shared Limiter instance imported by controllers for per-route limits.
# create_app() binds it to each app; storage and the on/off switch come from
# RATELIMIT_STORAGE_URI / RATELIMIT_ENABLED in app.config.
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["1000 per hour", "200 per minute"],
)
