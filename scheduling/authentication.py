"""
Authentication classes for the scheduling API.

Identity is issued elsewhere (the hospital's login service).  Requests
carry either a DRF token (``Authorization: Token <key>``) or a JWT
access token (``Authorization: Bearer <jwt>``); both resolve to a
:class:`scheduling.models.User` whose ``role`` the permission classes read.
Keeping the classes here gives settings a stable import path and avoids
circular imports when DRF loads them during start-up.
"""
from __future__ import annotations

from rest_framework import authentication
from rest_framework_simplejwt.authentication import JWTAuthentication


class TokenAuthentication(authentication.TokenAuthentication):
    keyword = 'Token'


class BearerJWTAuthentication(JWTAuthentication):
    """Access tokens minted by the login service with the shared signing key."""

    www_authenticate_realm = 'hospital'
