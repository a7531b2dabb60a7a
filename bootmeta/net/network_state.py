# This file is part of bootmeta. See LICENSE file for license information.

"""Provider agnostic network model built from metadata address records.

Metadata services report hardware interfaces (identified by MAC) and layer 3
addresses separately. Hardware interfaces are kept as bare interfaces, while
all addresses and their routes are collected on a single aggregate interface.
"""

import ipaddress
import logging
from collections import defaultdict
from typing import DefaultDict, Dict, Iterable, List, NamedTuple, Optional

from bootmeta.exceptions import ParseError
from bootmeta.net import (
    IPV6_ADDRLEN,
    IPAddress,
    address_length,
    ip_to_str,
    mask_to_net_prefix,
    parse_mac,
    zero_address,
)

LOG = logging.getLogger(__name__)

AGGREGATE_PRIORITY = 5

PRIVATE_IPV4_DESTINATION_ADDRESS = ipaddress.IPv4Address("10.0.0.0")
PRIVATE_IPV4_DESTINATION_NETMASK = ipaddress.IPv4Address("255.0.0.0")

# (family, public) -> attribute class name, in emission order
ATTRIBUTE_CLASSES = (
    ((4, True), "IPV4_PUBLIC"),
    ((4, False), "IPV4_PRIVATE"),
    ((6, True), "IPV6_PUBLIC"),
    ((6, False), "IPV6_PRIVATE"),
)


class AddressRecord(NamedTuple):
    family: int
    public: bool
    address: IPAddress
    netmask: Optional[IPAddress]
    gateway: Optional[IPAddress] = None


class InterfaceRecord(NamedTuple):
    mac: str
    name: Optional[str] = None


class IPNetwork(NamedTuple):
    address: IPAddress
    netmask: Optional[IPAddress]

    def __str__(self):
        if self.netmask is None:
            return ip_to_str(self.address)
        try:
            prefix = mask_to_net_prefix(self.netmask)
        except ValueError:
            return "%s/%s" % (ip_to_str(self.address), self.netmask)
        return "%s/%d" % (ip_to_str(self.address), prefix)


class NetworkRoute(NamedTuple):
    destination: IPNetwork
    gateway: Optional[IPAddress]


class NetworkInterface(NamedTuple):
    hardware_address: Optional[str]
    priority: int
    ip_addresses: List[IPNetwork]
    routes: List[NetworkRoute]


def route_destination(record: AddressRecord) -> Optional[IPNetwork]:
    """Return the route destination synthesized for an address record.

    Public addresses get the unspecified network of their own length,
    private IPv4 addresses are routed through 10.0.0.0/8. Private IPv6
    addresses have no destination and None is returned.
    """
    addrlen = address_length(record.address)
    if record.public:
        return IPNetwork(zero_address(addrlen), zero_address(addrlen))
    if addrlen == IPV6_ADDRLEN:
        return None
    return IPNetwork(
        PRIVATE_IPV4_DESTINATION_ADDRESS, PRIVATE_IPV4_DESTINATION_NETMASK
    )


def parse_network(
    interfaces: Iterable[InterfaceRecord], addresses: Iterable[AddressRecord]
) -> List[NetworkInterface]:
    """Build the list of network interfaces described by metadata records.

    One interface carrying only the hardware address is returned per
    interface record, followed by a single aggregate interface holding every
    address and a route for each, at matching positions.

    @raises ParseError: if any interface MAC address fails to parse.
    """
    ifaces = []
    for iface in interfaces:
        try:
            mac = parse_mac(iface.mac)
        except ValueError as e:
            raise ParseError("interface.mac", iface.mac, e) from e
        ifaces.append(
            NetworkInterface(
                hardware_address=mac, priority=0, ip_addresses=[], routes=[]
            )
        )

    aggregate = NetworkInterface(
        hardware_address=None,
        priority=AGGREGATE_PRIORITY,
        ip_addresses=[],
        routes=[],
    )
    for addr in addresses:
        destination = route_destination(addr)
        if destination is None:
            # TODO: private IPv6 addresses are dropped until it is known
            # where they should be routed.
            LOG.debug("Skipping private IPv6 address %s", addr.address)
            continue
        aggregate.ip_addresses.append(IPNetwork(addr.address, addr.netmask))
        aggregate.routes.append(NetworkRoute(destination, addr.gateway))
    ifaces.append(aggregate)

    LOG.debug(
        "Parsed %d hardware interfaces and %d addresses",
        len(ifaces) - 1,
        len(aggregate.ip_addresses),
    )
    return ifaces


def get_network_attrs(
    addresses: Iterable[AddressRecord], prefix: str = ""
) -> Dict[str, str]:
    """Name every address by family, visibility and position.

    Attributes are named <prefix>_<CLASS>_<index> where CLASS is one of
    IPV4_PUBLIC, IPV4_PRIVATE, IPV6_PUBLIC or IPV6_PRIVATE and index counts
    from zero within each class. Families other than 4 and 6 are ignored.
    """
    buckets: DefaultDict[tuple, List[IPAddress]] = defaultdict(list)
    for addr in addresses:
        buckets[(addr.family, bool(addr.public))].append(addr.address)

    attrs = {}
    for key, cls in ATTRIBUTE_CLASSES:
        name = "%s_%s" % (prefix, cls) if prefix else cls
        for i, ip in enumerate(buckets.get(key, [])):
            attrs["%s_%d" % (name, i)] = ip_to_str(ip)
    return attrs
