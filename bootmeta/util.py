# This file is part of bootmeta. See LICENSE file for license information.

import json
import logging
import os
from typing import Dict, List, Mapping, Sequence, Union

import yaml

LOG = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "/etc/bootmeta/bootmeta.cfg"


def decode_binary(blob: Union[str, bytes], encoding="utf-8") -> str:
    return blob if isinstance(blob, str) else blob.decode(encoding)


def obj_name(obj):
    """Name of obj's type, or of obj itself when it is a type."""
    return obj.__name__ if isinstance(obj, type) else type(obj).__name__


def load_text_file(fname: Union[str, os.PathLike]) -> str:
    with open(fname, "rb") as fp:
        contents = fp.read()
    LOG.debug("Read %s bytes from %s", len(contents), fname)
    return decode_binary(contents)


def load_json(text, root_types=(dict,)):
    """Decode a JSON document whose root must be one of root_types.

    @raises ValueError: on malformed JSON.
    @raises TypeError: when the root has another type.
    """
    decoded = json.loads(decode_binary(text))
    if not isinstance(decoded, tuple(root_types)):
        raise TypeError(
            "expected a %s document, got %s"
            % ("/".join(obj_name(t) for t in root_types), obj_name(decoded))
        )
    return decoded


def load_yaml(blob, default=None, allowed=(dict,)):
    """Load a YAML document, returning default when it is empty or bad."""
    try:
        loaded = yaml.safe_load(decode_binary(blob))
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None) or getattr(
            e, "context_mark", None
        )
        if mark:
            LOG.warning(
                "Failed loading yaml blob. Invalid format at line %s"
                " column %s: %s",
                mark.line + 1,
                mark.column + 1,
                e,
            )
        else:
            LOG.warning("Failed loading yaml blob. %s", e)
        return default
    if loaded is None:
        return default
    if not isinstance(loaded, allowed):
        LOG.warning(
            "Yaml load allows %s root types, got %s instead",
            "/".join(obj_name(t) for t in allowed),
            obj_name(loaded),
        )
        return default
    return loaded


def read_conf(fname) -> Dict:
    """Read a yaml config file, a missing file is an empty config."""
    try:
        return load_yaml(load_text_file(fname), default={})
    except FileNotFoundError:
        return {}


def read_conf_d(confd) -> dict:
    """Merge the *.cfg files of confd, later names winning."""
    cfgs: List[Dict] = []
    for fname in sorted(os.listdir(confd), reverse=True):
        path = os.path.join(confd, fname)
        if not fname.endswith(".cfg") or not os.path.isfile(path):
            continue
        try:
            cfgs.append(read_conf(path))
        except OSError as e:
            LOG.warning("Skipping config part %s: %s", path, e)
    return mergemanydict(cfgs)


def read_conf_with_confd(cfgfile=DEFAULT_CONFIG_FILE) -> dict:
    """Read cfgfile merged with its ".d" directory.

    The fragments directory is <cfgfile>.d unless cfgfile names another
    one in 'conf_d'. Fragments take precedence over cfgfile.
    """
    try:
        cfg = read_conf(cfgfile)
    except OSError as e:
        LOG.warning("Skipping config file %s: %s", cfgfile, e)
        cfg = {}

    confd = cfg.get("conf_d", "%s.d" % cfgfile)
    if confd and not isinstance(confd, str):
        raise TypeError(
            "Config file %s contains 'conf_d' with non-string type %s"
            % (cfgfile, obj_name(confd))
        )
    if confd and os.path.isdir(confd.strip()):
        return mergemanydict([read_conf_d(confd.strip()), cfg])
    return cfg


def get_cfg_by_path(yobj, keyp, default=None):
    """Return the value at keyp in yobj, or default.

    keyp is a '/' delimited string or a sequence of keys:
      get_cfg_by_path({'a': {'b': {'num': 4}}}, 'a/b/num') == 4
    """
    if isinstance(keyp, str):
        keyp = keyp.split("/")
    cur = yobj
    for tok in keyp:
        if not isinstance(cur, dict) or tok not in cur:
            return default
        cur = cur[tok]
    return cur


def _merge_dict(base: dict, extra: Mapping) -> dict:
    merged = dict(base)
    for key, value in extra.items():
        if key not in merged:
            merged[key] = value
        elif isinstance(merged[key], dict) and isinstance(value, Mapping):
            merged[key] = _merge_dict(merged[key], value)
    return merged


def mergemanydict(sources: Sequence[Mapping], reverse=False) -> dict:
    """Merge dicts, the first one holding a key wins.

    Nested dicts are merged recursively:
      mergemanydict([{"d": {"a": 1}}, {"a": 10, "d": {"a": 3, "f": 10}}])
      == {"a": 10, "d": {"a": 1, "f": 10}}
    """
    if reverse:
        sources = list(reversed(sources))
    merged: dict = {}
    for cfg in sources:
        if cfg:
            merged = _merge_dict(merged, cfg)
    return merged
