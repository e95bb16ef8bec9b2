"""Claim type registry: symbolic claim names ⇔ canonical claim type URIs.

Claims travel over the API with short symbolic names ("Name", "Email") and are
stored under their canonical URI. The table is fixed and built once at import;
construction rejects any configuration that is not a bijection so the inverse
lookup is never ambiguous.

Usage:
    from identity_manager.core.claim_types import CLAIM_TYPES

    CLAIM_TYPES.canonical_of("Name")
    CLAIM_TYPES.symbolic_of("http://schemas.xmlsoap.org/ws/2005/05/identity/claims/name")
"""
from __future__ import annotations
from types import MappingProxyType
from typing import Iterable

from .errors import UnknownClaimType

_XMLSOAP = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/"
_XMLSOAP_2009 = "http://schemas.xmlsoap.org/ws/2009/09/identity/claims/"
_MICROSOFT = "http://schemas.microsoft.com/ws/2008/06/identity/claims/"

NAME = _XMLSOAP + "name"
ROLE = _MICROSOFT + "role"

DEFAULT_CLAIM_TYPES: tuple[tuple[str, str], ...] = (
    ("Actor", _XMLSOAP_2009 + "actor"),
    ("Anonymous", _XMLSOAP + "anonymous"),
    ("Authentication", _XMLSOAP + "authentication"),
    ("AuthenticationInstant", _MICROSOFT + "authenticationinstant"),
    ("AuthenticationMethod", _MICROSOFT + "authenticationmethod"),
    ("AuthorizationDecision", _XMLSOAP + "authorizationdecision"),
    ("CookiePath", _MICROSOFT + "cookiepath"),
    ("Country", _XMLSOAP + "country"),
    ("DateOfBirth", _XMLSOAP + "dateofbirth"),
    ("DenyOnlyPrimaryGroupSid", _MICROSOFT + "denyonlyprimarygroupsid"),
    ("DenyOnlyPrimarySid", _MICROSOFT + "denyonlyprimarysid"),
    ("DenyOnlySid", _XMLSOAP + "denyonlysid"),
    ("DenyOnlyWindowsDeviceGroup", _MICROSOFT + "denyonlywindowsdevicegroup"),
    ("Dns", _XMLSOAP + "dns"),
    ("Dsa", _MICROSOFT + "dsa"),
    ("Email", _XMLSOAP + "emailaddress"),
    ("Expiration", _MICROSOFT + "expiration"),
    ("Expired", _MICROSOFT + "expired"),
    ("Gender", _XMLSOAP + "gender"),
    ("GivenName", _XMLSOAP + "givenname"),
    ("GroupSid", _MICROSOFT + "groupsid"),
    ("Hash", _XMLSOAP + "hash"),
    ("HomePhone", _XMLSOAP + "homephone"),
    ("IsPersistent", _MICROSOFT + "ispersistent"),
    ("Locality", _XMLSOAP + "locality"),
    ("MobilePhone", _XMLSOAP + "mobilephone"),
    ("Name", NAME),
    ("NameIdentifier", _XMLSOAP + "nameidentifier"),
    ("OtherPhone", _XMLSOAP + "otherphone"),
    ("PostalCode", _XMLSOAP + "postalcode"),
    ("PrimaryGroupSid", _MICROSOFT + "primarygroupsid"),
    ("PrimarySid", _MICROSOFT + "primarysid"),
    ("Role", ROLE),
    ("Rsa", _XMLSOAP + "rsa"),
    ("SerialNumber", _MICROSOFT + "serialnumber"),
    ("Sid", _XMLSOAP + "sid"),
    ("Spn", _XMLSOAP + "spn"),
    ("StateOrProvince", _XMLSOAP + "stateorprovince"),
    ("StreetAddress", _XMLSOAP + "streetaddress"),
    ("Surname", _XMLSOAP + "surname"),
    ("System", _XMLSOAP + "system"),
    ("Thumbprint", _XMLSOAP + "thumbprint"),
    ("Upn", _XMLSOAP + "upn"),
    ("Uri", _XMLSOAP + "uri"),
    ("UserData", _MICROSOFT + "userdata"),
    ("Version", _MICROSOFT + "version"),
    ("Webpage", _XMLSOAP + "webpage"),
    ("WindowsAccountName", _MICROSOFT + "windowsaccountname"),
    ("WindowsDeviceClaim", _MICROSOFT + "windowsdeviceclaim"),
    ("WindowsDeviceGroup", _MICROSOFT + "windowsdevicegroup"),
    ("WindowsFqbnVersion", _MICROSOFT + "windowsfqbnversion"),
    ("WindowsSubAuthority", _MICROSOFT + "windowssubauthority"),
    ("WindowsUserClaim", _MICROSOFT + "windowsuserclaim"),
    ("X500DistinguishedName", _XMLSOAP + "x500distinguishedname"),
)


class ClaimTypeConfigurationError(ValueError):
    """Claim type table is not a bijection."""


class ClaimTypeRegistry:
    """Immutable symbolic ⇔ canonical claim type mapping."""

    def __init__(self, entries: Iterable[tuple[str, str]]):
        forward: dict[str, str] = {}
        inverse: dict[str, str] = {}
        for symbolic, canonical in entries:
            if not symbolic or not canonical:
                raise ClaimTypeConfigurationError("Claim type names and values must be non-empty")
            if symbolic in forward:
                raise ClaimTypeConfigurationError(f"Duplicate symbolic claim type '{symbolic}'")
            if canonical in inverse:
                raise ClaimTypeConfigurationError(
                    f"Claim types '{inverse[canonical]}' and '{symbolic}' both map to '{canonical}'"
                )
            forward[symbolic] = canonical
            inverse[canonical] = symbolic

        self._forward = MappingProxyType(forward)
        self._inverse = MappingProxyType(inverse)
        self._names = tuple(sorted(forward))

    def symbolic_names(self) -> list[str]:
        """Symbolic names in lexicographic (ordinal) order, for presentation."""
        return list(self._names)

    def canonical_of(self, symbolic: str) -> str:
        try:
            return self._forward[symbolic]
        except (KeyError, TypeError):
            raise UnknownClaimType(str(symbolic)) from None

    def symbolic_of(self, canonical: str) -> str:
        try:
            return self._inverse[canonical]
        except (KeyError, TypeError):
            raise UnknownClaimType(str(canonical)) from None

    def is_canonical(self, value: str) -> bool:
        return value in self._inverse

    def __len__(self) -> int:
        return len(self._forward)


CLAIM_TYPES = ClaimTypeRegistry(DEFAULT_CLAIM_TYPES)
