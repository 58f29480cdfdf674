import asyncio
import json
import logging
import os
from typing import Dict, Optional

import firebase_admin
from firebase_admin import credentials, exceptions, messaging


logger = logging.getLogger(__name__)


class InvalidDeviceToken(Exception):
    """The push service no longer accepts this device token."""


class PushGateway:
    """Firebase Cloud Messaging sender."""

    def __init__(self, service_account: Optional[str] = None):
        self.service_account = service_account or os.getenv("FIREBASE_SERVICE_ACCOUNT")
        self._app = None

    def _get_app(self):
        if self._app is not None:
            return self._app
        try:
            self._app = firebase_admin.get_app()
        except ValueError:
            if self.service_account:
                cred = credentials.Certificate(json.loads(self.service_account))
                logger.info("Firebase Admin initialized from service account")
            else:
                cred = credentials.ApplicationDefault()
                logger.info("Firebase Admin initialized with default credentials")
            self._app = firebase_admin.initialize_app(cred)
        return self._app

    async def send(self, device_token: str, title: str, body: str, data: Optional[Dict] = None) -> str:
        message = messaging.Message(
            token=device_token,
            notification=messaging.Notification(title=title, body=body),
            # FCM data values must be strings
            data={key: str(value) for key, value in (data or {}).items() if value is not None},
        )
        try:
            return await asyncio.to_thread(messaging.send, message, app=self._get_app())
        except (messaging.UnregisteredError, messaging.SenderIdMismatchError, exceptions.InvalidArgumentError) as e:
            raise InvalidDeviceToken(str(e)) from e

    def close(self):
        if self._app is not None:
            firebase_admin.delete_app(self._app)
            self._app = None
