from datetime import datetime
from typing import Callable

import pytz

from medicare.config import settings

# Returns the current clinic-local wall-clock time (naive)
Clock = Callable[[], datetime]


def clinic_now() -> datetime:
    tz = pytz.timezone(settings.TIMEZONE)
    return datetime.now(tz).replace(tzinfo=None)
