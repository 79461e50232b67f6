# common.py
# Description: Small helpers for record ids and timestamps
#
# Imports
import time
import uuid
from datetime import datetime, timezone
#
########################################################################################################################
#
# Functions:


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return utc_now().isoformat()


def new_record_id(prefix: str) -> str:
    """Ids look like `quiz-1718031234567-3f9a1c2`: millisecond clock plus 7 random hex chars."""
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:7]}"

#
# End of common.py
########################################################################################################################
