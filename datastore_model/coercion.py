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

from typing import Any

from . import config as datastore_config
from .exceptions import CoercionError

default_config = {
    "false_values": ["0", "f", "F", "false", "FALSE", "off", "OFF"],
}


def _config(key: str) -> Any:
    config = datastore_config.global_config.get("coercion", {}) if datastore_config.global_config else {}
    return (config or {}).get(key, default_config[key])


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def coerce_integer(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, str):
        value = value.strip()
        try:
            return int(value)
        except ValueError:
            pass
    try:
        return int(float(value))
    except (TypeError, ValueError):
        raise CoercionError(f"Invalid integer value '{value}'.")


def coerce_float(value: Any) -> float:
    try:
        return float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        raise CoercionError(f"Invalid float value '{value}'.")


def to_boolean(value: Any) -> bool:
    """Casts a submitted value to a boolean, blank strings and configured false values are False"""
    if value is None or value is False:
        return False
    if isinstance(value, str):
        if value.strip() == "":
            return False
        return value not in _config("false_values")
    if isinstance(value, (int, float)):
        return value != 0
    return True


coercer = {
    "integer": coerce_integer,
    "float": coerce_float,
    "boolean": to_boolean,
}


def format_property_value(model, attr: str, type: str) -> None:
    """
    Coerces a model attribute to the given type and assigns it back through the setter.

    Blank values are left alone. Supported types are boolean, integer and float.
    """
    if type not in coercer:
        raise CoercionError("Supported types are boolean, integer, float")
    value = getattr(model, attr)
    if is_blank(value):
        return
    setattr(model, attr, coercer[type](value))


def default_property_value(model, attr: str, value: Any) -> None:
    if getattr(model, attr) is None:
        setattr(model, attr, value)
