import json

import pytest

from licensedetect.core.config import DetectorConfig, load_config_from_path


def test_defaults_validate():
    cfg = DetectorConfig()
    cfg.validate()

    assert cfg.classifier.code_backend == "pygments"
    assert cfg.classifier.redirect_max_bytes == 128
    assert cfg.normalizer.header_window_bytes == 1024
    assert cfg.matching.min_similarity == 0.75
    assert cfg.sources.max_file_bytes == 1024 * 1024


def test_validate_normalizes_backends():
    cfg = DetectorConfig()
    cfg.classifier.code_backend = " Baseline "
    cfg.matching.mention_backend = "BASELINE"

    cfg.validate()

    assert cfg.classifier.code_backend == "baseline"
    assert cfg.matching.mention_backend == "baseline"


@pytest.mark.parametrize(
    "section, name, value",
    [
        ("classifier", "code_backend", "guesslang"),
        ("classifier", "redirect_max_bytes", -1),
        ("normalizer", "header_window_bytes", 0),
        ("matching", "min_similarity", 1.5),
        ("matching", "readme_min_similarity", -0.1),
        ("matching", "mention_backend", "gpt"),
        ("concurrency", "max_workers", -2),
        ("sources", "max_file_bytes", 0),
    ],
)
def test_validate_rejects_bad_values(section, name, value):
    cfg = DetectorConfig()
    setattr(getattr(cfg, section), name, value)

    with pytest.raises(ValueError):
        cfg.validate()


def test_json_round_trip(tmp_path):
    cfg = DetectorConfig()
    cfg.matching.min_similarity = 0.8
    cfg.concurrency.max_workers = 2
    path = tmp_path / "cfg.json"

    cfg.to_json(path)
    loaded = load_config_from_path(path)

    assert loaded.to_dict() == cfg.to_dict()
    assert json.loads(path.read_text())["matching"]["min_similarity"] == 0.8


def test_toml_loading(tmp_path):
    path = tmp_path / "cfg.toml"
    path.write_text(
        '[classifier]\ncode_backend = "baseline"\n\n'
        "[matching]\nmin_similarity = 0.9\n\n"
        '[logging]\nlevel = "DEBUG"\n',
        encoding="utf-8",
    )

    cfg = load_config_from_path(path)

    assert cfg.classifier.code_backend == "baseline"
    assert cfg.matching.min_similarity == 0.9
    assert cfg.logging.level == "DEBUG"
    assert cfg.normalizer.header_window_bytes == 1024


def test_from_dict_coerces_scalars():
    cfg = DetectorConfig.from_dict({"concurrency": {"max_workers": "4"}, "logging": {"propagate": "yes"}})

    assert cfg.concurrency.max_workers == 4
    assert cfg.logging.propagate is True


def test_unknown_keys_are_rejected():
    with pytest.raises(ValueError, match="Unsupported options for DetectorConfig"):
        DetectorConfig.from_dict({"pipeline": {}})
    with pytest.raises(ValueError, match="Unsupported options for MatchingConfig"):
        DetectorConfig.from_dict({"matching": {"threshold": 0.5}})


def test_unsupported_extension(tmp_path):
    path = tmp_path / "cfg.yaml"
    path.write_text("a: 1", encoding="utf-8")

    with pytest.raises(ValueError, match="Unsupported config extension"):
        load_config_from_path(path)


def test_load_validates(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"matching": {"min_similarity": 2}}), encoding="utf-8")

    with pytest.raises(ValueError):
        load_config_from_path(path)
