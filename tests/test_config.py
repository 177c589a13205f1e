"""Tests for ImputationConfig and YAML/JSON config loading."""

import json

import pytest

from mdlimpute.config import ImputationConfig, config_from_dict, load_config
from mdlimpute.impute.predictors import ElasticNetPredictor, RandomForestPredictor


def test_defaults_are_valid():
    config = ImputationConfig()
    assert config.validate() == []
    assert config.inner_iters == 50
    assert config.outer_cycles == 10


def test_load_nested_yaml(tmp_path):
    path = tmp_path / "gsimp.yaml"
    path.write_text(
        "imputation:\n"
        "  inner_iters: 20\n"
        "  seed: 7\n"
        "  penalty_mix: [0.5, 1.0]\n"
    )
    config = load_config(path)

    assert config.inner_iters == 20
    assert config.seed == 7
    assert config.penalty_mix == (0.5, 1.0)
    assert config.outer_cycles == 10


def test_load_json(tmp_path):
    path = tmp_path / "gsimp.json"
    path.write_text(json.dumps({"outer_cycles": 3, "predictor": "random_forest"}))
    config = load_config(path)

    assert config.outer_cycles == 3
    assert isinstance(config.make_predictor(), RandomForestPredictor)


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "empty.yml"
    path.write_text("")
    assert load_config(path) == ImputationConfig()


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_unsupported_suffix(tmp_path):
    path = tmp_path / "gsimp.toml"
    path.write_text("inner_iters = 3\n")
    with pytest.raises(ValueError, match="Unsupported config format"):
        load_config(path)


def test_non_mapping_rejected(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(ValueError, match="dictionary"):
        load_config(path)


def test_unknown_key_rejected():
    with pytest.raises(ValueError, match="Unknown imputation option"):
        config_from_dict({"inner_iter": 5})


def test_invalid_value_rejected():
    with pytest.raises(ValueError, match="cv_folds"):
        config_from_dict({"cv_folds": 1})


def test_replace():
    base = ImputationConfig(seed=1)
    changed = base.replace(outer_cycles=4)

    assert changed.outer_cycles == 4
    assert changed.seed == 1
    assert base.outer_cycles == 10
    with pytest.raises(ValueError):
        base.replace(bogus=True)


def test_make_predictor_passes_options():
    predictor = ImputationConfig(n_alphas=7, cv_folds=4).make_predictor()
    assert isinstance(predictor, ElasticNetPredictor)
    assert predictor.n_alphas == 7
    assert predictor.cv_folds == 4


def test_to_dict_is_json_serializable():
    d = ImputationConfig(seed=3).to_dict()
    assert json.loads(json.dumps(d))["seed"] == 3
