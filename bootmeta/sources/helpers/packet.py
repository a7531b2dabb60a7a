# This file is part of bootmeta. See LICENSE file for license information.

"""Packet (Equinix Metal) metadata service client and decoder.

Example payload of https://metadata.packet.net/metadata (trimmed):

    {"hostname": "node-1",
     "ssh_keys": ["ssh-ed25519 AAAA... user@host"],
     "phone_home_url": "http://tinkerbell.ewr1.packet.net/phone-home",
     "network": {
        "interfaces": [{"name": "eth0", "mac": "0c:c4:7a:e5:42:b6"}],
        "addresses": [
            {"address_family": 4, "public": true, "address": "147.75.1.2",
             "netmask": "255.255.255.254", "gateway": "147.75.1.1",
             "cidr": 31},
            {"address_family": 4, "public": false, "address": "10.80.1.3",
             "netmask": "255.255.255.254", "gateway": "10.80.1.2",
             "cidr": 31}]}}

A failed lookup is answered with {"error": "<message>"}.
"""

import ipaddress
import logging
from typing import List, NamedTuple

from bootmeta import url_helper, util
from bootmeta.exceptions import DecodeError, ProviderError
from bootmeta.net import address_length, net_prefix_to_mask
from bootmeta.net.network_state import AddressRecord, InterfaceRecord

LOG = logging.getLogger(__name__)

METADATA_URL = "https://metadata.packet.net/metadata"


class PacketMetadata(NamedTuple):
    hostname: str
    ssh_keys: List[str]
    phone_home_url: str
    interfaces: List[InterfaceRecord]
    addresses: List[AddressRecord]


def read_metadata(
    url=METADATA_URL, timeout=5, retries=9, sec_between=1, max_sec_between=5
) -> bytes:
    return url_helper.readurl(
        url,
        timeout=timeout,
        retries=retries,
        sec_between=sec_between,
        max_sec_between=max_sec_between,
    ).contents


def _get(obj, key, types, default, where):
    value = obj.get(key)
    if value is None:
        return default
    # bool is an int, but an int is never a bool
    if not isinstance(value, types) or (
        isinstance(value, bool) and bool not in types
    ):
        raise DecodeError(
            "%s.%s: expected %s, got %s"
            % (
                where,
                key,
                "/".join(t.__name__ for t in types),
                util.obj_name(value),
            )
        )
    return value


def _get_ip(obj, key, where, required=False):
    value = _get(obj, key, (str,), None, where)
    if not value:
        if required:
            raise DecodeError("%s.%s: missing IP address" % (where, key))
        return None
    try:
        return ipaddress.ip_address(value)
    except ValueError as e:
        raise DecodeError("%s.%s" % (where, key), e) from e


def _decode_address(raw, where) -> AddressRecord:
    if not isinstance(raw, dict):
        raise DecodeError(
            "%s: expected dict, got %s" % (where, util.obj_name(raw))
        )
    address = _get_ip(raw, "address", where, required=True)
    netmask = _get_ip(raw, "netmask", where)
    if netmask is None:
        cidr = _get(raw, "cidr", (int,), None, where)
        if cidr is not None:
            try:
                netmask = net_prefix_to_mask(cidr, address_length(address))
            except ValueError as e:
                raise DecodeError("%s.cidr" % where, e) from e
    return AddressRecord(
        family=_get(raw, "address_family", (int,), 0, where),
        public=_get(raw, "public", (bool,), False, where),
        address=address,
        netmask=netmask,
        gateway=_get_ip(raw, "gateway", where),
    )


def _decode_interface(raw, where) -> InterfaceRecord:
    if not isinstance(raw, dict):
        raise DecodeError(
            "%s: expected dict, got %s" % (where, util.obj_name(raw))
        )
    return InterfaceRecord(
        mac=_get(raw, "mac", (str,), "", where),
        name=_get(raw, "name", (str,), None, where),
    )


def decode_metadata(raw) -> PacketMetadata:
    """Decode a metadata service response.

    @raises DecodeError: if raw is not a well formed metadata document.
    @raises ProviderError: if the service answered with an error message.
    """
    try:
        data = util.load_json(raw)
    except (TypeError, ValueError) as e:
        raise DecodeError("malformed metadata", e) from e

    error = _get(data, "error", (str,), "", "metadata")
    if error:
        raise ProviderError(error)

    ssh_keys = _get(data, "ssh_keys", (list,), [], "metadata")
    for i, key in enumerate(ssh_keys):
        if not isinstance(key, str):
            raise DecodeError(
                "metadata.ssh_keys[%d]: expected str, got %s"
                % (i, util.obj_name(key))
            )

    network = _get(data, "network", (dict,), {}, "metadata")
    interfaces = [
        _decode_interface(iface, "network.interfaces[%d]" % i)
        for i, iface in enumerate(
            _get(network, "interfaces", (list,), [], "network")
        )
    ]
    addresses = [
        _decode_address(addr, "network.addresses[%d]" % i)
        for i, addr in enumerate(
            _get(network, "addresses", (list,), [], "network")
        )
    ]
    LOG.debug(
        "Decoded metadata with %d interfaces and %d addresses",
        len(interfaces),
        len(addresses),
    )
    return PacketMetadata(
        hostname=_get(data, "hostname", (str,), "", "metadata"),
        ssh_keys=list(ssh_keys),
        phone_home_url=_get(data, "phone_home_url", (str,), "", "metadata"),
        interfaces=interfaces,
        addresses=addresses,
    )
