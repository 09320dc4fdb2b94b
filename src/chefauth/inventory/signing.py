# Copyright (c) chefauth Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Chef Server Request Signing

Implements the Chef authentication protocol version 1.3: a canonical
request description is signed with the client's RSA key (PKCS#1 v1.5,
SHA-256) and sent base64 encoded across numbered
``X-Ops-Authorization-N`` headers of at most 60 characters each.
"""

from __future__ import annotations

import base64
import hashlib
import re
from datetime import datetime, timezone
from typing import Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from ..exceptions import AuthDeniedError

SIGN_VERSION = "1.3"
SERVER_API_VERSION = "1"
AUTHORIZATION_CHUNK = 60


def load_private_key(pem: str) -> rsa.RSAPrivateKey:
    """Load a PEM client key. A key that cannot be used means denial."""
    try:
        key = serialization.load_pem_private_key(pem.encode("utf-8"), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise AuthDeniedError("invalid private key") from exc
    if not isinstance(key, rsa.RSAPrivateKey):
        raise AuthDeniedError("chef client keys must be RSA keys")
    return key


def canonical_path(path: str) -> str:
    """Collapse repeated slashes and drop a trailing slash."""
    path = re.sub(r"/+", "/", path or "/")
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return path


def content_hash(body: bytes) -> str:
    return base64.b64encode(hashlib.sha256(body).digest()).decode("ascii")


def canonical_request(
    method: str,
    path: str,
    hashed_body: str,
    timestamp: str,
    user_id: str,
    server_api_version: str = SERVER_API_VERSION,
) -> str:
    return "\n".join(
        [
            f"Method:{method.upper()}",
            f"Path:{canonical_path(path)}",
            f"X-Ops-Content-Hash:{hashed_body}",
            f"X-Ops-Sign:version={SIGN_VERSION}",
            f"X-Ops-Timestamp:{timestamp}",
            f"X-Ops-UserId:{user_id}",
            f"X-Ops-Server-API-Version:{server_api_version}",
        ]
    )


def sign_request(
    key: rsa.RSAPrivateKey,
    user_id: str,
    method: str,
    path: str,
    body: bytes = b"",
    now: Optional[datetime] = None,
) -> dict[str, str]:
    """Return the authentication headers for one request."""
    now = now or datetime.now(timezone.utc)
    timestamp = now.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    hashed_body = content_hash(body)

    to_sign = canonical_request(method, path, hashed_body, timestamp, user_id)
    signature = key.sign(to_sign.encode("utf-8"), padding.PKCS1v15(), hashes.SHA256())
    encoded = base64.b64encode(signature).decode("ascii")

    headers = {
        "X-Ops-Sign": f"algorithm=sha256;version={SIGN_VERSION}",
        "X-Ops-Userid": user_id,
        "X-Ops-Timestamp": timestamp,
        "X-Ops-Content-Hash": hashed_body,
        "X-Ops-Server-API-Version": SERVER_API_VERSION,
    }
    for index in range(0, len(encoded), AUTHORIZATION_CHUNK):
        number = index // AUTHORIZATION_CHUNK + 1
        headers[f"X-Ops-Authorization-{number}"] = encoded[index:index + AUTHORIZATION_CHUNK]
    return headers
