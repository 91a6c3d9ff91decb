"""
bosbase_sdk
───────────
Stable top-level exports. Import from here, not from sub-modules directly.
Every name exported here is part of the public API and subject to semver.
"""
__version__ = "0.1.0"

from bosbase_sdk.tier0_core.errors import BosbaseError, ClientResponseError
from bosbase_sdk.tier0_core.attachments import FileAttachment
from bosbase_sdk.tier0_core.config import BosbaseConfig, get_config
from bosbase_sdk.tier0_core.logging import get_logger

from bosbase_sdk.tier1_runtime.auth_store import AuthSnapshot, AuthStore
from bosbase_sdk.tier1_runtime.clock import Clock
from bosbase_sdk.tier1_runtime.request import (
    JsonContent,
    MultipartContent,
    RequestContent,
    build_content,
    build_relative_url,
    encode_query,
)
from bosbase_sdk.tier1_runtime.serialize import denormalize, from_json, normalize, to_json

from bosbase_sdk.tier3_platform.client import BeforeSendResult, BosbaseClient, SendOptions

__all__ = [
    # errors
    "BosbaseError", "ClientResponseError",
    # attachments
    "FileAttachment",
    # config / logging
    "BosbaseConfig", "get_config", "get_logger",
    # auth
    "AuthStore", "AuthSnapshot", "Clock",
    # request building
    "RequestContent", "JsonContent", "MultipartContent",
    "build_content", "build_relative_url", "encode_query",
    # serialization
    "normalize", "denormalize", "to_json", "from_json",
    # client
    "BosbaseClient", "SendOptions", "BeforeSendResult",
]
