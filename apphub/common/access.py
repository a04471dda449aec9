"""Decide whether a requester may view an app.

The access configuration of an app is a closed set of variants, one per access
type. Each variant only carries the data that is meaningful for its type, so a
stale password on a domain-restricted app can never be consulted.

"""
from typing import Any, FrozenSet, Iterable, Literal, Mapping, NamedTuple, \
    Optional, Union


AccessType = Literal[
    'private',
    'public',
    'password',
    'email_list',
    'domain'
]
ACCESS_TYPES = ('private', 'public', 'password', 'email_list', 'domain')

DenyReason = Literal[
    'private',
    'password_required',
    'email_required',
    'not_on_list',
    'wrong_domain'
]

Gate = Literal['password', 'email']


class PrivateAccess(NamedTuple):
    """Only the owner may view the app."""

    access_type: Literal['private'] = 'private'


class PublicAccess(NamedTuple):
    """Anyone with the link may view the app."""

    access_type: Literal['public'] = 'public'


class PasswordAccess(NamedTuple):
    """Viewers must know a shared password."""

    password: str
    access_type: Literal['password'] = 'password'


class EmailListAccess(NamedTuple):
    """Viewers must prove ownership of a listed email address.

    Attributes:
        emails: Lower-cased email addresses.

    """

    emails: FrozenSet[str]
    access_type: Literal['email_list'] = 'email_list'


class DomainAccess(NamedTuple):
    """Viewers must prove ownership of an email address on a domain.

    Attributes:
        domain: Lower-cased bare domain name, eg. 'example.com'.

    """

    domain: str
    access_type: Literal['domain'] = 'domain'


AccessConfig = Union[PrivateAccess, PublicAccess, PasswordAccess,
                     EmailListAccess, DomainAccess]


class Verdict(NamedTuple):
    """Access decision.

    Attributes:
        allowed: Whether the app may be served.
        reason: Why access was denied. None if access is allowed.

    """

    allowed: bool
    reason: Optional[DenyReason] = None


ALLOW = Verdict(allowed=True)


def normalize_email(email: str) -> str:
    """Normalize an email address for comparison."""
    return email.strip().lower()


def normalize_domain(domain: str) -> str:
    """Normalize a domain name for comparison.

    A leading '@' is removed, eg. '@Example.com' -> 'example.com'.
    """
    return domain.strip().lstrip('@').lower()


def email_domain(email: str) -> Optional[str]:
    """Get the domain part of an email address.

    Returns:
        The lower-cased domain or None if the email has no domain part.

    """
    _, sep, domain = email.rpartition('@')
    if not sep or not domain:
        return None
    return normalize_domain(domain)


def is_valid_email(email: Any) -> bool:
    """Check that the value looks like an email address."""
    if not isinstance(email, str):
        return False
    local, sep, domain = email.strip().rpartition('@')
    return bool(local and sep and domain and '.' in domain
                and ' ' not in email.strip())


def email_list(emails: Iterable[str]) -> EmailListAccess:
    """Create an email list config with normalized addresses."""
    normalized = frozenset(normalize_email(e) for e in emails if e.strip())
    return EmailListAccess(emails=normalized)


def from_attributes(attributes: Mapping[str, Any]) -> AccessConfig:
    """Build the access config from stored app attributes.

    Fields that don't belong to the stored access type are ignored. Unknown
    or missing access types fall back to private.

    Args:
        attributes: App item attributes with `AccessType` and optionally
            `AccessPassword`, `AccessEmails` and `AccessDomain`.

    Returns:
        The access config.

    """
    access_type = attributes.get('AccessType', 'private')
    if access_type == 'public':
        return PublicAccess()
    elif access_type == 'password':
        password = attributes.get('AccessPassword')
        # A password gate without a password can not be unlocked.
        if not password:
            return PrivateAccess()
        return PasswordAccess(password=password)
    elif access_type == 'email_list':
        return email_list(attributes.get('AccessEmails') or [])
    elif access_type == 'domain':
        domain = attributes.get('AccessDomain')
        if not domain:
            return PrivateAccess()
        return DomainAccess(domain=normalize_domain(domain))
    else:
        return PrivateAccess()


def to_attributes(access: AccessConfig) -> Mapping[str, Any]:
    """Convert the access config to app attributes for storage.

    Fields of the other access types are always written empty, so partial
    updates can't leave stale secrets behind.
    """
    attributes = {
        'AccessType': access.access_type,
        'AccessPassword': '',
        'AccessEmails': [],
        'AccessDomain': '',
    }
    if isinstance(access, PasswordAccess):
        attributes['AccessPassword'] = access.password
    elif isinstance(access, EmailListAccess):
        attributes['AccessEmails'] = sorted(access.emails)
    elif isinstance(access, DomainAccess):
        attributes['AccessDomain'] = access.domain
    return attributes


def evaluate(access: AccessConfig, requester_email: Optional[str],
             is_owner: bool) -> Verdict:
    """Decide whether a requester may view an app.

    The function is pure. Whether a password was entered or an email was
    verified before is tracked by grants and must be combined with the verdict
    by the caller.

    Args:
        access: The app's access config.
        requester_email: The verified email of the requester if any.
        is_owner: Whether the requester owns the app.

    Returns:
        The verdict.

    """
    if is_owner:
        return ALLOW

    if isinstance(access, PublicAccess):
        return ALLOW
    elif isinstance(access, PasswordAccess):
        return Verdict(allowed=False, reason='password_required')
    elif isinstance(access, EmailListAccess):
        if not requester_email:
            return Verdict(allowed=False, reason='email_required')
        if normalize_email(requester_email) in access.emails:
            return ALLOW
        return Verdict(allowed=False, reason='not_on_list')
    elif isinstance(access, DomainAccess):
        if not requester_email:
            return Verdict(allowed=False, reason='email_required')
        if email_domain(requester_email) == access.domain:
            return ALLOW
        return Verdict(allowed=False, reason='wrong_domain')
    else:
        return Verdict(allowed=False, reason='private')


def gate_for(reason: Optional[DenyReason]) -> Optional[Gate]:
    """Get the gate a denied requester should be shown.

    Returns:
        'password' or 'email' if the requester can pass a challenge, None for
        terminal denials.

    """
    if reason == 'password_required':
        return 'password'
    elif reason == 'email_required':
        return 'email'
    else:
        return None
