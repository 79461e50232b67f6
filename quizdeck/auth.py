# auth.py
# Description: Authentication context handed explicitly to every sync component
#
# Imports
from dataclasses import dataclass
from typing import Optional
#
########################################################################################################################
#
# Functions:


@dataclass(frozen=True)
class AuthContext:
    """
    Who is signed in, and whether a cloud backend exists at all.

    `user_id` is the backend's stable opaque uid. When `is_configured` is
    false every sync operation is a no-op.
    """
    user_id: Optional[str] = None
    is_configured: bool = False
    display_name: Optional[str] = None

    @property
    def is_signed_in(self) -> bool:
        return bool(self.user_id)

    @property
    def can_sync(self) -> bool:
        return self.is_configured and self.is_signed_in


SIGNED_OUT = AuthContext()

#
# End of auth.py
########################################################################################################################
