#
# Copyright 2022 European Centre for Medium-Range Weather Forecasts (ECMWF)
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# In applying this licence, ECMWF does not waive the privileges and immunities
# granted to it by virtue of its status as an intergovernmental organisation nor
# does it submit to any jurisdiction.
#

import argparse
import copy
import logging
import os
from typing import Any, Dict, List, Optional

import pykwalify
import yaml
from pykwalify.core import Core

from .. import config as datastore_config
from ..exceptions import InvalidConfig

DEFAULT_CONFIG_FILE = "/etc/datastore_model/config.yaml"
SCHEMA_FILE = os.path.join(os.path.dirname(os.path.abspath(__file__)), "schema.yaml")


def _merge(base, overlay):
    if not (isinstance(base, dict) and isinstance(overlay, dict)):
        if isinstance(base, list) and isinstance(overlay, list):
            return base + overlay
        return copy.deepcopy(overlay)

    merged = copy.deepcopy(base)
    for key, value in overlay.items():
        if value is None:
            # An explicit null in a later file removes the key
            merged.pop(key, None)
        elif key in merged:
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def merge(*configs):
    """Deep merge configs left to right: dicts recurse, lists concatenate, later scalars win"""
    result = {}
    for c in configs:
        result = _merge(result, c)
    return result


def interpolate_env_vars(value):
    """Expands $VARS and ~ in every string of a config tree"""
    if isinstance(value, dict):
        return {k: interpolate_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [interpolate_env_vars(v) for v in value]
    if isinstance(value, str):
        return os.path.expanduser(os.path.expandvars(value))
    return value


def config_files_from_args(argv: List[str]) -> List[str]:
    """Collects the -f/--config files from an explicit argument list, ignoring everything else"""
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("-f", "--config", dest="config_files", action="append", default=[])
    args, _ = parser.parse_known_args(argv)
    return args.config_files


class ConfigParser:
    """
    Loads the library configuration and publishes it as datastore_model.config.global_config.

    Only the files passed in are read. A host application opts in to the system-wide
    file with include_default=True, and to its command line with argv=sys.argv[1:].
    """

    def __init__(self, schema_file: str = SCHEMA_FILE):
        self.schema_file = schema_file

    def read(
        self,
        config_files: Optional[List[str]] = None,
        argv: Optional[List[str]] = None,
        include_default: bool = False,
    ) -> Dict[str, Any]:
        """Read, merge, interpolate and validate YAML files, in the order given"""
        files = []
        if include_default and os.path.isfile(DEFAULT_CONFIG_FILE):
            files.append(DEFAULT_CONFIG_FILE)
        files += list(config_files or [])
        if argv is not None:
            files += config_files_from_args(argv)

        if not files:
            raise InvalidConfig("No configuration files specified.")

        documents = []
        for path in files:
            with open(path, "r") as f:
                documents.extend(d for d in yaml.safe_load_all(f) if d is not None)

        logging.debug("Read configuration from {}".format(files))
        return self.load(merge(*documents))

    def load(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Validate an in-memory config and make it the global one"""
        config = interpolate_env_vars(config or {})
        self.validate(config)
        datastore_config.global_config = config
        return config

    def validate(self, config: Dict[str, Any]) -> None:
        if config.get("developer", {}).get("disable_schema_check", False):
            return

        schema_check = Core(source_data=config, schema_files=[self.schema_file], extensions=[])
        try:
            pykwalify.init_logging(0)
            schema_check.validate(raise_exception=True)
        except pykwalify.errors.SchemaError:
            raise InvalidConfig(
                "Configuration did not validate against schema:\n - {}".format(
                    "\n - ".join(schema_check.validation_errors)
                )
            )
