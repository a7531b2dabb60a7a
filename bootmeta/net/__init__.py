# This file is part of bootmeta. See LICENSE file for license information.

import ipaddress
import re
from typing import Union

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

IPV4_ADDRLEN = 4
IPV6_ADDRLEN = 16

# Hardware addresses come in EUI-48, EUI-64 and 20 octet IPoIB flavours.
MAC_OCTET_COUNTS = (6, 8, 20)
_MAC_SEPARATED_RE = re.compile(
    r"[0-9a-f]{2}(?P<sep>[:-])[0-9a-f]{2}(?:(?P=sep)[0-9a-f]{2})*",
    re.IGNORECASE,
)
_MAC_DOTTED_RE = re.compile(r"[0-9a-f]{4}(?:\.[0-9a-f]{4})+", re.IGNORECASE)


def ipv4_form(address: IPAddress):
    """Return the IPv4 form of address, or None if it has none.

    IPv4-mapped IPv6 addresses (::ffff:a.b.c.d) count as IPv4.
    """
    if address.version == 4:
        return address
    return address.ipv4_mapped


def address_length(address: IPAddress) -> int:
    """Number of bytes needed to represent address: 4 or 16."""
    if ipv4_form(address) is not None:
        return IPV4_ADDRLEN
    return IPV6_ADDRLEN


def ip_to_str(address: IPAddress) -> str:
    """Canonical string form of address.

    IPv4-mapped IPv6 addresses render as dotted quads.
    """
    mapped = ipv4_form(address)
    if mapped is not None:
        return str(mapped)
    return str(address)


def zero_address(addrlen: int) -> IPAddress:
    return ipaddress.ip_address(bytes(addrlen))


def net_prefix_to_mask(prefix, addrlen=IPV4_ADDRLEN) -> IPAddress:
    """Convert a network prefix length to a netmask of addrlen bytes.

        24, 4   -> IPv4Address("255.255.255.0")
        64, 16  -> IPv6Address("ffff:ffff:ffff:ffff::")
    """
    if addrlen == IPV4_ADDRLEN:
        return ipaddress.IPv4Network(f"0.0.0.0/{prefix}").netmask
    return ipaddress.IPv6Network(f"::/{prefix}").netmask


def mask_to_net_prefix(mask: IPAddress) -> int:
    """Convert a netmask into a network prefix length.

       IPv4Address("255.255.255.0")   => 24
       IPv6Address("ffff:ffff::")     => 32

    Raises ValueError for non-contiguous masks.
    """
    bits = mask.max_prefixlen
    value = int(mask)
    prefix = bin(value).count("1")
    if value != (1 << bits) - (1 << (bits - prefix)):
        raise ValueError("Invalid network mask '%s'" % mask)
    return prefix


def parse_mac(mac: str) -> str:
    """Parse a hardware address and return it in lower case colon form.

    Accepted notations, for 6, 8 or 20 octet addresses:
        00:00:5e:00:53:01
        00-00-5E-00-53-01
        0000.5e00.5301

    Raises ValueError if mac is not a valid hardware address.
    """
    if not isinstance(mac, str):
        raise ValueError("invalid MAC address %r" % (mac,))
    if _MAC_SEPARATED_RE.fullmatch(mac):
        octets = re.split(r"[:-]", mac)
    elif _MAC_DOTTED_RE.fullmatch(mac):
        octets = []
        for group in mac.split("."):
            octets.extend([group[:2], group[2:]])
    else:
        raise ValueError("invalid MAC address %r" % (mac,))
    if len(octets) not in MAC_OCTET_COUNTS:
        raise ValueError(
            "invalid MAC address %r: %d octets" % (mac, len(octets))
        )
    return ":".join(octets).lower()
