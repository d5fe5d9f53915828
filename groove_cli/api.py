"""
HTTP request layer and GraphQL envelope handling for groove-cli.
"""

import json
import re
import sys
import time
import urllib.error
import urllib.parse
import urllib.request
import uuid

from groove_cli import config
from groove_cli.exceptions import (
    HTTPError,
    NotFoundError,
    RateLimitedError,
    TransportError,
    UnauthorizedError,
    UnknownOperationError,
)

_RETRYABLE_HTTP_CODES = frozenset({429, 502, 503, 504})


# ---------------------------------------------------------------------------
# Security helpers
# ---------------------------------------------------------------------------


def _sanitize_error(body, max_len=500):
    """Truncate and clean error body for safe display."""
    if not body:
        return ""
    cleaned = re.sub(r"<[^>]+>", "", body)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    if len(cleaned) > max_len:
        return cleaned[:max_len] + "... [truncated]"
    return cleaned


def _sanitize_url_for_log(url):
    """Mask sensitive query params in URLs before logging."""
    parsed = urllib.parse.urlsplit(url)
    if not parsed.query:
        return url
    pairs = urllib.parse.parse_qsl(parsed.query, keep_blank_values=True)
    masked = []
    for key, value in pairs:
        if key.lower() in {"token", "access_token", "api_token"}:
            masked.append((key, "***"))
        else:
            masked.append((key, value))
    safe_query = urllib.parse.urlencode(masked, doseq=True)
    return urllib.parse.urlunsplit(
        (parsed.scheme, parsed.netloc, parsed.path, safe_query, parsed.fragment)
    )


def _log_http_event(enabled, **fields):
    """Emit structured HTTP logs to stderr when enabled."""
    if not enabled:
        return
    print("[HTTP] " + json.dumps(fields, ensure_ascii=False, sort_keys=True), file=sys.stderr)


def _error_envelope(message, status=None, request_id=None, retryable=None, detail=None):
    """Build a consistent one-line HTTP error message."""
    meta = []
    if status is not None:
        meta.append(f"status={status}")
    if request_id:
        meta.append(f"request_id={request_id}")
    if retryable is not None:
        meta.append(f"retryable={'yes' if retryable else 'no'}")
    suffix = f" ({', '.join(meta)})" if meta else ""
    body = f"{message}{suffix}"
    if detail:
        body += f": {detail}"
    return body


def _parse_retry_after(headers):
    """Return Retry-After seconds from response headers, or None."""
    if not headers:
        return None
    value = headers.get("Retry-After")
    if value is None:
        return None
    try:
        secs = int(str(value).strip())
    except ValueError:
        return None
    return max(0, secs)


# ---------------------------------------------------------------------------
# HTTP request layer
# ---------------------------------------------------------------------------


def _http_request(url, data=None, headers=None, method="POST", idempotent=False, log=False):
    """Make an HTTP request with standard error handling.
    Returns parsed JSON on success.
    Raises HTTPError for HTTP errors (caller maps specific codes).
    Raises TransportError on network/timeout/parse errors."""
    body = json.dumps(data).encode("utf-8") if data is not None else None
    request_id = (headers or {}).get("X-Request-Id")
    safe_url = _sanitize_url_for_log(url)
    max_attempts = 1 + max(0, config.HTTP_MAX_RETRIES if idempotent else 0)
    timeout = max(1, config.HTTP_TIMEOUT_SECONDS)
    last_error = None

    for attempt in range(max_attempts):
        start = time.perf_counter()
        req = urllib.request.Request(url, data=body, headers=headers or {}, method=method)
        _log_http_event(
            log,
            phase="request",
            method=method,
            url=safe_url,
            attempt=attempt + 1,
            max_attempts=max_attempts,
            idempotent=idempotent,
            request_id=request_id,
            timeout_seconds=timeout,
        )
        try:
            with urllib.request.urlopen(req, timeout=timeout) as resp:
                content_type = resp.headers.get("Content-Type", "")
                raw = resp.read(config.HTTP_MAX_RESPONSE_BYTES + 1)
                if len(raw) > config.HTTP_MAX_RESPONSE_BYTES:
                    raise TransportError(
                        "Response too large from Groove API "
                        f"(>{config.HTTP_MAX_RESPONSE_BYTES} bytes)."
                    )
                _log_http_event(
                    log,
                    phase="response",
                    method=method,
                    url=safe_url,
                    attempt=attempt + 1,
                    status=getattr(resp, "status", 200),
                    content_type=content_type,
                    bytes=len(raw),
                    latency_ms=round((time.perf_counter() - start) * 1000, 2),
                    request_id=request_id,
                )
                try:
                    return json.loads(raw.decode("utf-8"))
                except (json.JSONDecodeError, UnicodeDecodeError) as e:
                    if content_type and "json" not in content_type.lower():
                        raise TransportError(
                            f"Unexpected Content-Type from server ({content_type}). "
                            "This may be a proxy or network issue."
                        ) from e
                    raise TransportError(
                        "Unexpected response from Groove API (not valid JSON)."
                    ) from e
        except urllib.error.HTTPError as e:
            error_body = (
                e.read(config.HTTP_MAX_RESPONSE_BYTES).decode("utf-8", errors="replace")
                if e.fp
                else ""
            )
            retryable = e.code in _RETRYABLE_HTTP_CODES
            can_retry = idempotent and attempt < max_attempts - 1 and retryable
            _log_http_event(
                log,
                phase="response",
                method=method,
                url=safe_url,
                attempt=attempt + 1,
                status=e.code,
                retryable=retryable,
                will_retry=can_retry,
                latency_ms=round((time.perf_counter() - start) * 1000, 2),
                request_id=request_id,
            )
            if can_retry:
                retry_after = _parse_retry_after(getattr(e, "headers", None))
                if retry_after is None:
                    retry_after = config.HTTP_RETRY_BASE_SECONDS * (2**attempt)
                time.sleep(retry_after)
                continue
            raise HTTPError(e.code, e.reason, error_body, headers=e.headers) from e
        except (TimeoutError, urllib.error.URLError) as e:
            if isinstance(e, TimeoutError):
                last_error = TransportError(
                    _error_envelope(
                        f"Request timed out after {timeout} seconds. Is the Groove API reachable?",
                        request_id=request_id,
                    )
                )
                reason = "timeout"
            else:
                last_error = TransportError(
                    _error_envelope(f"Connection failed: {e.reason}", request_id=request_id)
                )
                reason = f"url_error: {e.reason}"
            will_retry = idempotent and attempt < max_attempts - 1
            _log_http_event(
                log,
                phase="network_error",
                method=method,
                url=safe_url,
                attempt=attempt + 1,
                error=reason,
                will_retry=will_retry,
                request_id=request_id,
            )
            if will_retry:
                time.sleep(config.HTTP_RETRY_BASE_SECONDS * (2**attempt))
                continue
            raise last_error from e

    raise last_error or TransportError(_error_envelope("Request failed.", request_id=request_id))


# ---------------------------------------------------------------------------
# GraphQL
# ---------------------------------------------------------------------------


def graphql_request(endpoint, token, query, variables=None, idempotent=False, log=False):
    """POST a GraphQL document and return its ``data`` object.

    Read queries are sent as idempotent (retried by the request layer);
    mutations are not.
    """
    headers = {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
        "Accept": "application/json",
        "User-Agent": f"groove-cli/{config.VERSION}",
        "X-Request-Id": str(uuid.uuid4()),
    }
    payload = {"query": query, "variables": variables or {}}
    try:
        result = _http_request(endpoint, payload, headers, "POST", idempotent=idempotent, log=log)
    except HTTPError as e:
        server_req_id = e.headers.get("X-Request-Id") if e.headers else None
        if e.code in (401, 403):
            raise UnauthorizedError(
                "Authentication failed: invalid or expired token. "
                "Run 'groove config set-token <token>' to update it."
            ) from e
        if e.code == 404:
            raise NotFoundError(
                _error_envelope("Endpoint not found", status=404, request_id=server_req_id)
            ) from e
        if e.code == 429:
            raise RateLimitedError(retry_after=_parse_retry_after(e.headers)) from e
        raise UnknownOperationError(
            _error_envelope(
                f"HTTP {e.code}: {e.reason}",
                status=e.code,
                request_id=server_req_id,
                retryable=e.code in _RETRYABLE_HTTP_CODES,
                detail=_sanitize_error(e.body),
            )
        ) from e

    if not isinstance(result, dict):
        raise TransportError(
            f"Unexpected GraphQL response shape: expected JSON object, got {type(result).__name__}."
        )
    errors = result.get("errors")
    if errors:
        messages = [
            str(err.get("message", err)) if isinstance(err, dict) else str(err) for err in errors
        ]
        raise UnknownOperationError(f"GraphQL error: {'; '.join(messages)}")
    data = result.get("data")
    if not isinstance(data, dict):
        raise UnknownOperationError("GraphQL error: no data in response.")
    return data


def mutation_errors(result):
    """Raise when a mutation payload reports user errors."""
    errors = (result or {}).get("errors") or []
    if errors:
        messages = [
            str(err.get("message", err)) if isinstance(err, dict) else str(err) for err in errors
        ]
        raise UnknownOperationError("; ".join(messages))
