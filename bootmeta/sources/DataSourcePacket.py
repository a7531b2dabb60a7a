# This file is part of bootmeta. See LICENSE file for license information.

# Packet (Equinix Metal) Metadata API:
# https://metal.equinix.com/developers/docs/server-metadata/metadata/

import logging

import bootmeta.sources.helpers.packet as packet_helper
from bootmeta import sources
from bootmeta.net.network_state import get_network_attrs, parse_network

LOG = logging.getLogger(__name__)

BUILTIN_DS_CONFIG = {
    "metadata_url": packet_helper.METADATA_URL,
    "attribute_prefix": "PACKET",
}


class DataSourcePacket(sources.DataSource):

    dsname = "Packet"
    builtin_ds_config = BUILTIN_DS_CONFIG

    # 10 attempts, waiting 1, 2, 4, 5, 5... seconds in between
    url_timeout = 5
    url_retries = 9
    url_sec_between_retries = 1
    url_max_sec_between_retries = 5

    @property
    def metadata_url(self):
        return self._get_string("metadata_url")

    @property
    def attribute_prefix(self):
        return self._get_string("attribute_prefix", allow_empty=True)

    def _read_metadata(self) -> bytes:
        url_params = self.get_url_params()
        return packet_helper.read_metadata(
            self.metadata_url,
            timeout=url_params.timeout_seconds,
            retries=url_params.num_retries,
            sec_between=url_params.sec_between_retries,
            max_sec_between=url_params.max_sec_between_retries,
        )

    def _fetch_metadata(self) -> sources.Metadata:
        md = packet_helper.decode_metadata(self._read_metadata())

        network = parse_network(md.interfaces, md.addresses)

        prefix = self.attribute_prefix
        attrs = get_network_attrs(md.addresses, prefix)
        key_prefix = "%s_" % prefix if prefix else ""
        attrs[key_prefix + "HOSTNAME"] = md.hostname
        attrs[key_prefix + "PHONE_HOME_URL"] = md.phone_home_url

        return sources.Metadata(
            attributes=attrs,
            hostname=md.hostname,
            ssh_keys=md.ssh_keys,
            network=network,
        )
