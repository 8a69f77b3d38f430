"""
Authentication backend for tribunal staff and parties.

Parties usually know their national ID or phone number rather than a
username, so any one of ``username``, ``national_id``, ``phone_number``
or ``email`` is accepted together with the password.  Email matching is
case-insensitive; surrounding whitespace is ignored for every field.

Registered in ``settings.AUTHENTICATION_BACKENDS``.
"""

from __future__ import annotations

import logging

from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend
from django.db.models import Q

logger = logging.getLogger(__name__)

User = get_user_model()


class MultiFieldAuthBackend(ModelBackend):
    """
    Resolve the login ``identifier`` against the four unique user fields.
    """

    def authenticate(self, request, identifier=None, password=None, **kwargs):
        """
        Parameters
        ----------
        request : HttpRequest | None
        identifier : str
            Username, national ID, phone number or email address.
        password : str

        Returns
        -------
        User | None
            ``None`` when the identifier matches nobody, matches more
            than one account, or the password is wrong.
        """
        if not identifier or password is None:
            return None
        identifier = identifier.strip()

        candidates = list(
            User.objects.filter(
                Q(username=identifier)
                | Q(national_id=identifier)
                | Q(phone_number=identifier)
                | Q(email__iexact=identifier)
            ).select_related("role")[:2]
        )
        if len(candidates) != 1:
            # Equalise timing with the password check below.
            User().set_password(password)
            if candidates:
                logger.warning("Login identifier matched several accounts")
            return None

        user = candidates[0]
        if user.check_password(password) and self.user_can_authenticate(user):
            return user
        logger.info("Failed login for user %s", user.pk)
        return None
