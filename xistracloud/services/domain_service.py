"""Domain service — custom domain registration and DNS verification.

Uses:
- A hostname pattern (RFC 1123 labels, alphabetic TLD) after normalising
  what users paste: protocol, path, ``www.`` and a trailing dot are dropped.
- DNS-over-HTTPS JSON queries (Cloudflare by default) to look up the TXT
  verification record and the CNAME. No resolver library or API key needed.

Verification outcome:
    verified  TXT ``_xistracloud.<domain>`` carries the token, or the domain
              CNAMEs to DOMAIN_CNAME_TARGET, or the domain contains one of
              the DOMAIN_VERIFY_BYPASS markers (test/demo domains)
    failed    anything else, including lookup errors
"""

import logging
import re
import secrets
from datetime import datetime, timezone

import requests
from flask import current_app

from xistracloud.errors import ConflictError, InvalidTransitionError, ValidationError
from xistracloud.extensions import db
from xistracloud.models.domain import Domain
from xistracloud.services import log_service

logger = logging.getLogger(__name__)

DOMAIN_RE = re.compile(
    r"^[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(\.[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*"
    r"\.[a-zA-Z]{2,}$"
)
MAX_DOMAIN_LENGTH = 253
TXT_PREFIX = "_xistracloud"
TOKEN_PREFIX = "xistracloud-verification="

DNS_TYPE_CNAME = 5
DNS_TYPE_TXT = 16


# ──────────────────────────────────────────────
# Normalisation
# ──────────────────────────────────────────────

def normalize_domain(raw: str) -> str:
    """Lowercase, strip protocol / path / port / ``www.`` / trailing dot."""
    domain = (raw or "").strip().lower()
    domain = re.sub(r"^[a-z][a-z0-9+.-]*://", "", domain)
    domain = domain.split("/", 1)[0].split("?", 1)[0].split("#", 1)[0]
    domain = domain.split(":", 1)[0]
    domain = domain.rstrip(".")
    if domain.startswith("www."):
        domain = domain[4:]
    return domain


def is_valid_domain(domain: str) -> bool:
    return bool(domain) and len(domain) <= MAX_DOMAIN_LENGTH and bool(DOMAIN_RE.match(domain))


def dns_records_for(domain: str, token: str) -> dict:
    return {
        "cname": {
            "name": domain,
            "value": current_app.config["DOMAIN_CNAME_TARGET"],
        },
        "txt": {
            "name": f"{TXT_PREFIX}.{domain}",
            "value": f"{TOKEN_PREFIX}{token}",
        },
    }


# ──────────────────────────────────────────────
# DNS-over-HTTPS
# ──────────────────────────────────────────────

def _doh_query(name: str, record_type: str) -> list | None:
    """Resolve ``name`` over DoH. Returns answer data strings, or None on error."""
    try:
        resp = requests.get(
            current_app.config["DNS_OVER_HTTPS_URL"],
            params={"name": name, "type": record_type},
            headers={"Accept": "application/dns-json"},
            timeout=8,
        )
        resp.raise_for_status()
        data = resp.json()
    except requests.exceptions.Timeout:
        logger.warning(f"DoH timeout for {record_type} {name}")
        return None
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.warning(f"DoH lookup failed for {record_type} {name}: {e}")
        return None

    if not isinstance(data, dict):
        logger.warning(f"DoH lookup for {record_type} {name} returned unexpected JSON")
        return None
    answers = data.get("Answer")
    if not isinstance(answers, list):
        return []
    return [
        str(answer.get("data", "")).strip('"').rstrip(".").lower()
        for answer in answers
        if isinstance(answer, dict)
    ]


def _check_dns(domain: Domain) -> tuple[bool, str]:
    """Look for the TXT token, then the CNAME. Returns (verified, reason)."""
    expected = f"{TOKEN_PREFIX}{domain.verification_token}".lower()
    txt_values = _doh_query(f"{TXT_PREFIX}.{domain.domain}", "TXT")
    if txt_values and any(expected in value for value in txt_values):
        return True, "TXT verification record found"

    target = current_app.config["DOMAIN_CNAME_TARGET"].lower().rstrip(".")
    cname_values = _doh_query(domain.domain, "CNAME")
    if cname_values and target in cname_values:
        return True, f"CNAME points to {target}"

    if txt_values is None and cname_values is None:
        return False, "DNS lookup failed"
    return False, "DNS records not found"


def _is_bypassed(domain_name: str) -> bool:
    markers = current_app.config.get("DOMAIN_VERIFY_BYPASS") or []
    labels = domain_name.lower().split(".")
    return any(marker in labels for marker in markers)


# ──────────────────────────────────────────────
# Public API
# ──────────────────────────────────────────────

def create_domain(project, raw_domain, user=None):
    """Attach a domain to ``project``. Raises ValidationError / ConflictError."""
    domain_name = normalize_domain(raw_domain)
    if not is_valid_domain(domain_name):
        raise ValidationError("Invalid domain format", code="INVALID_DOMAIN")

    if Domain.query.filter_by(domain=domain_name).first():
        raise ConflictError("Domain already exists", code="DOMAIN_EXISTS")

    token = secrets.token_hex(16)
    domain = Domain(
        domain=domain_name,
        project_id=project.id,
        status="pending",
        ssl_enabled=False,
        verification_token=token,
        dns_records=dns_records_for(domain_name, token),
    )
    db.session.add(domain)
    log_service.record(
        "info",
        f"Domain {domain_name} added to '{project.name}'",
        source="domain",
        project_id=project.id,
        user_id=user.id if user else None,
        commit=False,
    )
    db.session.commit()
    return domain


def verify_domain(domain, user=None):
    """Run verification for a pending or failed domain."""
    if domain.status == "verified":
        raise InvalidTransitionError("Domain is already verified")

    if _is_bypassed(domain.domain):
        verified, reason = True, "Test domain, verification skipped"
    else:
        verified, reason = _check_dns(domain)

    if verified:
        domain.status = "verified"
        domain.ssl_enabled = True
        domain.verified_at = datetime.now(timezone.utc)
        level, message = "success", f"Domain {domain.domain} verified"
    else:
        domain.status = "failed"
        level, message = "error", f"Domain {domain.domain} verification failed - {reason}"

    log_service.record(
        level,
        message,
        source="dns",
        project_id=domain.project_id,
        user_id=user.id if user else None,
        details=reason,
        commit=False,
    )
    db.session.commit()
    return domain, message


def delete_domain(domain, user=None):
    name, project_id = domain.domain, domain.project_id
    db.session.delete(domain)
    log_service.record(
        "info",
        f"Domain {name} removed",
        source="domain",
        project_id=project_id,
        user_id=user.id if user else None,
        commit=False,
    )
    db.session.commit()
