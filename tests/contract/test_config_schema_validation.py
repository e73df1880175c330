from __future__ import annotations

import json

import jsonschema
import pytest
import yaml

from sheetrecords.config.loader import SCHEMA_PATH

"""config_schema.json 自体の妥当性とサンプル設定の契約テスト"""


@pytest.fixture(scope="module")
def config_schema() -> dict:
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def test_schema_is_valid_draft_2020_12(config_schema):
    jsonschema.Draft202012Validator.check_schema(config_schema)


def test_sample_config_matches_schema(config_schema, sample_config_yaml):
    jsonschema.validate(yaml.safe_load(sample_config_yaml), config_schema)


@pytest.mark.parametrize(
    "mutate",
    [
        lambda d: d.pop("record"),
        lambda d: d["record"].update(name="not valid"),
        lambda d: d["record"].update(fields=[]),
        lambda d: d["record"]["fields"][0].update(kind="string"),
        lambda d: d["record"]["fields"][0].update(constraints="minimum 0"),
    ],
)
def test_invalid_configs_rejected(config_schema, sample_config_yaml, mutate):
    data = yaml.safe_load(sample_config_yaml)
    mutate(data)
    with pytest.raises(jsonschema.ValidationError):
        jsonschema.validate(data, config_schema)
