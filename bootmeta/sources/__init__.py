# This file is part of bootmeta. See LICENSE file for license information.

import abc
import logging
from collections import namedtuple
from typing import Dict, List, NamedTuple

from bootmeta import util
from bootmeta.exceptions import BootmetaError
from bootmeta.log import logexc
from bootmeta.net.network_state import NetworkInterface
from bootmeta.url_helper import UrlError

LOG = logging.getLogger(__name__)

URLParams = namedtuple(
    "URLParams",
    [
        "timeout_seconds",
        "num_retries",
        "sec_between_retries",
        "max_sec_between_retries",
    ],
)


class Metadata(NamedTuple):
    attributes: Dict[str, str]
    hostname: str
    ssh_keys: List[str]
    network: List[NetworkInterface]


class DataSource(metaclass=abc.ABCMeta):

    # Key of this source's settings under 'datasource' in the system config
    dsname = "_undef"

    # Default settings, overridden by the system config
    builtin_ds_config: Dict = {}

    # get_url_params defaults, seconds and retry counts
    url_timeout = 10
    url_retries = 5
    url_sec_between_retries = 1
    url_max_sec_between_retries = None

    def __init__(self, sys_cfg=None):
        self.sys_cfg = sys_cfg or {}
        self.ds_cfg = util.mergemanydict(
            [
                util.get_cfg_by_path(
                    self.sys_cfg, ("datasource", self.dsname), {}
                ),
                self.builtin_ds_config,
            ]
        )

    def __str__(self):
        return "DataSource%s" % self.dsname

    def _get_number(self, key, default, cast):
        value = self.ds_cfg.get(key, default)
        if value is None:
            return None
        try:
            return max(0, cast(value))
        except (TypeError, ValueError):
            logexc(
                LOG,
                "Config %s '%s' is not a number, using default '%s'",
                key,
                value,
                default,
            )
            return default

    def _get_string(self, key, allow_empty=False) -> str:
        value = self.ds_cfg.get(key)
        if not isinstance(value, str) or not (value or allow_empty):
            raise BootmetaError(
                "config %s must be a%s string, got %r"
                % (key, "" if allow_empty else " non-empty", value)
            )
        return value

    def get_url_params(self) -> URLParams:
        """Metadata read settings, the system config winning over defaults.

        Subclasses may override url_timeout, url_retries,
        url_sec_between_retries and url_max_sec_between_retries, the system
        config keys timeout, retries, sec_between and max_sec_between win
        over both.
        """
        return URLParams(
            self._get_number("timeout", self.url_timeout, float),
            self._get_number("retries", self.url_retries, int),
            self._get_number(
                "sec_between", self.url_sec_between_retries, float
            ),
            self._get_number(
                "max_sec_between", self.url_max_sec_between_retries, float
            ),
        )

    @abc.abstractmethod
    def _fetch_metadata(self) -> Metadata:
        """Read, decode and translate the provider metadata."""

    def fetch_metadata(self) -> Metadata:
        """Return the instance Metadata or raise.

        Any transport, decoding or parsing failure aborts the whole fetch.
        """
        try:
            metadata = self._fetch_metadata()
        except (BootmetaError, UrlError) as e:
            logexc(LOG, "%s: failed to fetch metadata: %s", self, e)
            raise
        LOG.debug(
            "%s: fetched %d attributes and %d network interfaces",
            self,
            len(metadata.attributes),
            len(metadata.network),
        )
        return metadata
