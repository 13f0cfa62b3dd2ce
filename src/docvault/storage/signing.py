"""AWS Signature Version 4 signing for S3-compatible object stores.

Implements the subset of SigV4 needed to authenticate single-object
``PUT`` requests with an ``Authorization`` header and to presign ``GET``
URLs. Every function is pure: identical inputs always produce identical
output, which is what allows the store to re-derive and check the
signature.

"""

import collections.abc
import datetime
import hashlib
import hmac
import typing
from urllib import parse

if typing.TYPE_CHECKING:
    from docvault.storage import credentials as credentials_

ALGORITHM = 'AWS4-HMAC-SHA256'
REGION = 'auto'
SERVICE = 's3'
TERMINATOR = 'aws4_request'
UNSIGNED_PAYLOAD = 'UNSIGNED-PAYLOAD'

# Headers signed on every authenticated upload
UPLOAD_SIGNED_HEADERS = 'host;x-amz-content-sha256;x-amz-date'

# SigV4 caps presigned URL validity at seven days
MAX_EXPIRES_IN = 604800


def hash_payload(data: bytes) -> str:
    """Return the lower-case hex SHA-256 digest of ``data``."""
    return hashlib.sha256(data).hexdigest()


def _hmac_sha256(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode('utf-8'), hashlib.sha256).digest()


def derive_signing_key(
    secret_key: str,
    date_stamp: str,
    region: str = REGION,
    service: str = SERVICE,
) -> bytes:
    """Derive the SigV4 signing key.

    The key is produced by the HMAC-SHA256 chain
    ``AWS4<secret> -> date -> region -> service -> aws4_request``. Each
    step uses the raw digest of the previous one as its key.

    Args:
        secret_key: Secret access key
        date_stamp: Signing date (YYYYMMDD)
        region: Region token, ``auto`` for R2
        service: Service token

    Returns:
        The 32 byte signing key.

    Raises:
        ValueError: If the secret key or date stamp is empty.

    """
    if not secret_key:
        raise ValueError('Secret access key must not be empty')
    if not date_stamp:
        raise ValueError('Date stamp must not be empty')
    k_date = _hmac_sha256(('AWS4' + secret_key).encode('utf-8'), date_stamp)
    k_region = _hmac_sha256(k_date, region)
    k_service = _hmac_sha256(k_region, service)
    return _hmac_sha256(k_service, TERMINATOR)


def sign(signing_key: bytes, string_to_sign: str) -> str:
    """Return the hex-encoded HMAC-SHA256 signature of a string."""
    return hmac.new(
        signing_key,
        string_to_sign.encode('utf-8'),
        hashlib.sha256,
    ).hexdigest()


def build_string_to_sign(
    amz_date: str,
    credential_scope: str,
    canonical_request_hash: str,
) -> str:
    return '\n'.join(
        [ALGORITHM, amz_date, credential_scope, canonical_request_hash]
    )


def credential_scope(
    date_stamp: str,
    region: str = REGION,
    service: str = SERVICE,
) -> str:
    return f'{date_stamp}/{region}/{service}/{TERMINATOR}'


def amz_timestamp(now: datetime.datetime) -> tuple[str, str]:
    """Format the signing instant.

    Args:
        now: Timezone-aware signing instant

    Returns:
        Tuple of ``(amz_date, date_stamp)``, i.e. ``YYYYMMDDTHHMMSSZ``
        and its first eight characters.

    Raises:
        ValueError: If ``now`` is naive.

    """
    if now.tzinfo is None:
        raise ValueError('Signing time must be timezone-aware')
    amz_date = now.astimezone(datetime.UTC).strftime('%Y%m%dT%H%M%SZ')
    return amz_date, amz_date[:8]


def uri_encode(value: str, *, encode_slash: bool = True) -> str:
    """Percent-encode a value using the SigV4 rules.

    Only the RFC 3986 unreserved characters ``A-Z a-z 0-9 - _ . ~`` are
    left as-is. Everything else is UTF-8 encoded and written as ``%XX``
    with upper-case hex.

    """
    return parse.quote(value, safe='' if encode_slash else '/')


def encode_object_path(bucket: str, key: str) -> str:
    """Build the path-style request path for an object.

    Each ``/``-separated segment of ``key`` is encoded on its own so the
    separators survive. The result is used both in the canonical request
    and in the URL that is sent.

    """
    segments = [uri_encode(segment) for segment in key.split('/')]
    return f'/{uri_encode(bucket)}/' + '/'.join(segments)


def canonical_query_string(
    params: collections.abc.Iterable[tuple[str, str]],
) -> str:
    """Encode and sort query parameters.

    Parameters are ordered by encoded name, then by encoded value.

    """
    encoded = sorted(
        (uri_encode(name), uri_encode(value)) for name, value in params
    )
    return '&'.join(f'{name}={value}' for name, value in encoded)


def canonical_headers(
    headers: collections.abc.Mapping[str, str],
) -> tuple[str, str]:
    """Build the canonical header block and the signed header list.

    Returns:
        Tuple of ``(canonical_headers, signed_headers)``. The block ends
        with a newline for every header, as SigV4 requires.

    """
    normalized = sorted(
        (name.strip().lower(), ' '.join(value.strip().split()))
        for name, value in headers.items()
    )
    block = ''.join(f'{name}:{value}\n' for name, value in normalized)
    signed = ';'.join(name for name, _value in normalized)
    return block, signed


def build_canonical_request(
    method: str,
    path: str,
    query: str,
    headers: collections.abc.Mapping[str, str],
    payload_hash: str,
) -> str:
    """Assemble the canonical request string.

    Args:
        method: HTTP method
        path: Already-encoded request path
        query: Canonical query string, empty for none
        headers: Headers to sign
        payload_hash: Hex SHA-256 of the body or ``UNSIGNED-PAYLOAD``

    """
    header_block, signed_headers = canonical_headers(headers)
    return '\n'.join(
        [method, path, query, header_block, signed_headers, payload_hash]
    )


def authorization_header(
    access_key_id: str,
    scope: str,
    signed_headers: str,
    signature: str,
) -> str:
    return (
        f'{ALGORITHM} Credential={access_key_id}/{scope}, '
        f'SignedHeaders={signed_headers}, Signature={signature}'
    )


def _signature(
    secret_key: str,
    date_stamp: str,
    amz_date: str,
    canonical_request: str,
) -> str:
    scope = credential_scope(date_stamp)
    string_to_sign = build_string_to_sign(
        amz_date,
        scope,
        hash_payload(canonical_request.encode('utf-8')),
    )
    return sign(derive_signing_key(secret_key, date_stamp), string_to_sign)


def sign_headers(
    credentials: 'credentials_.Credentials',
    method: str,
    host: str,
    path: str,
    payload_hash: str,
    now: datetime.datetime,
) -> dict[str, str]:
    """Sign a request with an ``Authorization`` header.

    Args:
        credentials: Signing credentials
        method: HTTP method
        host: Value of the ``Host`` header that will be sent
        path: Already-encoded request path
        payload_hash: Hex SHA-256 of the request body
        now: Signing instant

    Returns:
        The ``Host``, ``x-amz-date``, ``x-amz-content-sha256`` and
        ``Authorization`` headers to send with the request.

    """
    amz_date, date_stamp = amz_timestamp(now)
    signed = {
        'host': host,
        'x-amz-content-sha256': payload_hash,
        'x-amz-date': amz_date,
    }
    canonical_request = build_canonical_request(
        method, path, '', signed, payload_hash
    )
    signature = _signature(
        credentials.secret_access_key,
        date_stamp,
        amz_date,
        canonical_request,
    )
    return {
        'Host': host,
        'x-amz-date': amz_date,
        'x-amz-content-sha256': payload_hash,
        'Authorization': authorization_header(
            credentials.access_key_id,
            credential_scope(date_stamp),
            UPLOAD_SIGNED_HEADERS,
            signature,
        ),
    }


def presign_query(
    credentials: 'credentials_.Credentials',
    host: str,
    path: str,
    expires_in: int,
    now: datetime.datetime,
) -> str:
    """Build the query string of a presigned ``GET`` URL.

    Only the ``host`` header is signed and the payload is declared as
    ``UNSIGNED-PAYLOAD``. Expiry is enforced by the store from
    ``X-Amz-Date`` plus ``X-Amz-Expires``.

    Returns:
        The canonical query string followed by ``X-Amz-Signature``.

    """
    amz_date, date_stamp = amz_timestamp(now)
    scope = credential_scope(date_stamp)
    query = canonical_query_string(
        [
            ('X-Amz-Algorithm', ALGORITHM),
            ('X-Amz-Credential', f'{credentials.access_key_id}/{scope}'),
            ('X-Amz-Date', amz_date),
            ('X-Amz-Expires', str(expires_in)),
            ('X-Amz-SignedHeaders', 'host'),
        ]
    )
    canonical_request = build_canonical_request(
        'GET', path, query, {'host': host}, UNSIGNED_PAYLOAD
    )
    signature = _signature(
        credentials.secret_access_key,
        date_stamp,
        amz_date,
        canonical_request,
    )
    return f'{query}&X-Amz-Signature={signature}'
