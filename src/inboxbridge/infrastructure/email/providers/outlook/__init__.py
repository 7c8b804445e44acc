from inboxbridge.infrastructure.email.providers.outlook.auth import OutlookAuth
from inboxbridge.infrastructure.email.providers.outlook.client import GraphClient
from inboxbridge.infrastructure.email.providers.outlook.provider import OutlookProvider

__all__ = ["OutlookAuth", "GraphClient", "OutlookProvider"]
