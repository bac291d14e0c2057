"""Name and hostname validation for tunnel routes.

Hostnames are converted to their ASCII form before the syntax check so that
internationalized names are checked in the form that DNS will actually see.
"""

import re

import idna

NAME_PATTERN = re.compile(r"^[_a-zA-Z0-9][-_.a-zA-Z0-9]*$")
WILDCARD_NAME_PATTERN = re.compile(r"^[*_a-zA-Z0-9][-_.a-zA-Z0-9]*$")

MAX_LABEL_LENGTH = 63
MAX_HOSTNAME_LENGTH = 253
ACE_PREFIX = "xn--"


class HostnameError(ValueError):
    """Raised when a hostname cannot be converted to ASCII."""

    pass


def validate_name(value: str, allow_wildcard: bool = False) -> bool:
    """Check a name against the allowed character set.

    Args:
        value: Name to check
        allow_wildcard: Also allow a leading ``*``

    Returns:
        True if valid, False otherwise
    """
    pattern = WILDCARD_NAME_PATTERN if allow_wildcard else NAME_PATTERN
    return pattern.fullmatch(value) is not None


def _check_ascii_label(label: str) -> str:
    if label.startswith("-") or label.endswith("-"):
        raise HostnameError(f"label {label!r} starts or ends with a hyphen")

    if label[2:4] == "--":
        if not label.lower().startswith(ACE_PREFIX):
            raise HostnameError(f"label {label!r} has hyphens in the third and fourth position")
        try:
            idna.ulabel(label)
        except (idna.IDNAError, UnicodeError) as e:
            raise HostnameError(f"label {label!r} is not a valid A-label: {e}") from e

    return label


def to_ascii(hostname: str) -> str:
    """Convert a hostname to its ASCII (punycode) form.

    Labels are validated one by one and DNS length limits are enforced.
    ASCII labels are kept as they are; the character check is left to
    :func:`validate_name` so that ``*`` and ``_`` labels survive conversion.

    Args:
        hostname: Hostname, possibly containing non-ASCII labels

    Returns:
        ASCII hostname

    Raises:
        HostnameError: If a label is invalid or a DNS length limit is exceeded
    """
    if not hostname:
        raise HostnameError("hostname is empty")

    labels = hostname.split(".")
    trailing_dot = labels[-1] == "" and len(labels) > 1
    if trailing_dot:
        labels = labels[:-1]

    ascii_labels = []
    for label in labels:
        if not label:
            raise HostnameError("hostname contains an empty label")

        if label.isascii():
            ascii_label = _check_ascii_label(label)
        else:
            try:
                mapped = idna.uts46_remap(label, std3_rules=False, transitional=False)
                ascii_label = idna.alabel(mapped).decode("ascii")
            except (idna.IDNAError, UnicodeError) as e:
                raise HostnameError(f"label {label!r} is not valid: {e}") from e

        if len(ascii_label) > MAX_LABEL_LENGTH:
            raise HostnameError(
                f"label {ascii_label!r} is longer than {MAX_LABEL_LENGTH} characters"
            )
        ascii_labels.append(ascii_label)

    result = ".".join(ascii_labels)
    if len(result) > MAX_HOSTNAME_LENGTH:
        raise HostnameError(
            f"hostname is longer than {MAX_HOSTNAME_LENGTH} characters"
        )

    return result + "." if trailing_dot else result


def validate_hostname(value: str, allow_wildcard: bool = False) -> bool:
    """Check a hostname after converting it to ASCII.

    Args:
        value: Hostname to check
        allow_wildcard: Allow a leading ``*`` label

    Returns:
        True if the hostname converts cleanly and its ASCII form is a valid name
    """
    try:
        ascii_hostname = to_ascii(value)
    except HostnameError:
        return False

    return validate_name(ascii_hostname, allow_wildcard)
