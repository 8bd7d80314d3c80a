import threading
import zipfile
from importlib import resources

import pytest

from licensedetect.core.config import DetectorConfig
from licensedetect.core.interfaces import FilerError, NoLicenseFoundError
from licensedetect.core.pipeline import (
    NEXT_STAGE,
    STAGE_ORDER,
    DetectionPipeline,
    DetectionResult,
    Stage,
    detect,
    detect_path,
)
from licensedetect.sources.fs import MemoryFiler


def _license_text(name: str) -> str:
    return resources.files("licensedetect").joinpath("data", "licenses", name).read_text(encoding="utf-8")


def _config(**concurrency) -> DetectorConfig:
    cfg = DetectorConfig()
    cfg.classifier.code_backend = "baseline"
    for key, value in concurrency.items():
        setattr(cfg.concurrency, key, value)
    return cfg


def _apache_python_header() -> str:
    header = _license_text("Apache-2.0-header.txt").replace(
        "Copyright [yyyy] [name of copyright owner]", "Copyright 2024 Acme Corp"
    )
    commented = "\n".join(f"# {line}".rstrip() for line in header.splitlines())
    return commented + "\n\nimport os\n\n\ndef main():\n    return os.getcwd()\n"


class RecordingClassifier:
    def __init__(self):
        self.calls = []

    def classify(self, path):
        self.calls.append(path)
        return None, False


class FlakyFiler(MemoryFiler):
    def __init__(self, files, broken):
        super().__init__(files)
        self.broken = set(broken)

    def read_file(self, path):
        if path in self.broken:
            raise FilerError(f"permission denied: {path}")
        return super().read_file(path)


def test_stage_order_is_strictly_forward():
    assert STAGE_ORDER == (Stage.LICENSE_FILES, Stage.README, Stage.SOURCE_HEADERS)
    assert NEXT_STAGE[Stage.SOURCE_HEADERS] is Stage.NOT_FOUND
    assert Stage.NOT_FOUND not in NEXT_STAGE


def test_canonical_license_file():
    result = DetectionPipeline(MemoryFiler({"LICENSE": _license_text("MIT.txt")}), _config()).run()

    assert result.stage is Stage.LICENSE_FILES
    assert result.licenses == {"MIT": 1.0}
    assert result.found


def test_license_joined_onto_one_line():
    one_line = " ".join(_license_text("MIT.txt").split())

    result = DetectionPipeline(MemoryFiler({"LICENSE": one_line}), _config()).run()

    assert result.stage is Stage.LICENSE_FILES
    assert set(result.licenses) == {"MIT"}
    assert result.licenses["MIT"] >= 0.9


def test_license_file_with_half_the_text():
    text = _license_text("MIT.txt")

    result = DetectionPipeline(MemoryFiler({"LICENSE": text[: len(text) // 2]}), _config()).run()

    assert result.stage is Stage.LICENSE_FILES
    assert set(result.licenses) == {"MIT"}
    assert 0.75 <= result.licenses["MIT"] < 1.0


def test_gpl_source_header_reports_only_gpl():
    header = _license_text("GPL-3.0-header.txt").replace("<year>  <name of author>", "2024 Acme Corp")
    commented = "\n".join(f"# {line}".rstrip() for line in header.splitlines())
    filer = MemoryFiler({"main.py": commented + "\n\nprint('hi')\n"})

    result = DetectionPipeline(filer, _config()).run()

    assert result.stage is Stage.SOURCE_HEADERS
    assert result.licenses == {"GPL-3.0": 1.0}


def test_readme_generic_family_name():
    result = DetectionPipeline(MemoryFiler({"README.md": "Released under the BSD license.\n"}), _config()).run()

    assert result.stage is Stage.README
    assert result.licenses == {"BSD-2-Clause": 0.6, "BSD-3-Clause": 0.6}


def test_license_directory_files_are_merged():
    filer = MemoryFiler(
        {
            "licenses/MIT.txt": _license_text("MIT.txt"),
            "licenses/Apache-2.0.txt": _license_text("Apache-2.0.txt"),
            "main.c": "int main(void) { return 0; }\n",
        }
    )

    scores = detect(filer, _config())

    assert scores["MIT"] == 1.0
    assert scores["Apache-2.0"] == 1.0
    assert all(0.0 <= conf <= 1.0 for conf in scores.values())


def test_redirect_file_is_followed():
    sibling = MemoryFiler({"LICENSE": "LICENSE-MIT", "LICENSE-MIT": _license_text("MIT.txt")})
    nested = MemoryFiler({"LICENSE": "docs/MIT.txt\n", "docs/MIT.txt": _license_text("MIT.txt")})

    assert detect(sibling, _config())["MIT"] == 1.0
    assert detect(nested, _config())["MIT"] == 1.0


def test_readme_stage_runs_when_no_license_file():
    filer = MemoryFiler(
        {
            "README.md": "# Demo\n\nThis project is licensed under the Apache License 2.0.\n",
            "setup.cfg": "[metadata]\nname = demo\n",
        }
    )

    result = DetectionPipeline(filer, _config()).run()

    assert result.stage is Stage.README
    assert result.licenses["Apache-2.0"] > 0
    assert set(result.licenses) == {"Apache-2.0"}


def test_source_header_stage():
    filer = MemoryFiler({"src/app.py": "x = 1\n", "app.py": _apache_python_header()})

    result = DetectionPipeline(filer, _config()).run()

    assert result.stage is Stage.SOURCE_HEADERS
    assert result.licenses["Apache-2.0"] >= 0.9


def test_earlier_stage_short_circuits_later_ones():
    classifier = RecordingClassifier()
    filer = MemoryFiler(
        {
            "LICENSE": _license_text("MIT.txt"),
            "README.md": "Licensed under the GPLv3.\n",
            "app.py": _apache_python_header(),
        }
    )

    result = DetectionPipeline(filer, _config(), classifier=classifier).run()

    assert result.stage is Stage.LICENSE_FILES
    assert "GPL-3.0" not in result.licenses
    assert "Apache-2.0" not in result.licenses
    assert classifier.calls == []


def test_nothing_found_raises():
    filer = MemoryFiler({"main.go": "package main\n\nfunc main() {}\n", "notes.txt": "hello"})

    with pytest.raises(NoLicenseFoundError, match="no license file was found"):
        detect(filer, _config())

    result = DetectionPipeline(filer, _config()).run()
    assert result == DetectionResult(licenses={}, stage=Stage.NOT_FOUND)
    assert not result.found


def test_empty_tree_is_not_found():
    result = DetectionPipeline(MemoryFiler({}), _config()).run()

    assert result.stage is Stage.NOT_FOUND


def test_unsupported_language_warns_once(caplog):
    filer = MemoryFiler({"a.jl": "# MIT License\nx = 1\n", "b.jl": "# hello\n", "c.jl": "y = 2\n"})

    with caplog.at_level("WARNING", logger="licensedetect"):
        result = DetectionPipeline(filer, _config(max_workers=4)).run()

    assert result.stage is Stage.NOT_FOUND
    warnings = [r for r in caplog.records if "No comment syntax" in r.getMessage()]
    assert len(warnings) == 1
    assert "julia" in warnings[0].getMessage()


def test_unreadable_candidate_is_skipped():
    filer = FlakyFiler({"COPYING": "broken", "LICENSE.txt": _license_text("BSD-2-Clause.txt")}, broken={"COPYING"})

    assert detect(filer, _config())["BSD-2-Clause"] == 1.0


def test_worker_count_does_not_change_result():
    files = {
        "LICENSE-MIT": _license_text("MIT.txt"),
        "LICENSE-APACHE": _license_text("Apache-2.0.txt"),
        "COPYING": _license_text("GPL-3.0.txt"),
    }

    serial = detect(MemoryFiler(files), _config(max_workers=1))
    parallel = detect(MemoryFiler(files), _config(max_workers=4, window=2))

    assert serial == parallel
    assert {"MIT", "Apache-2.0", "GPL-3.0"} <= set(serial)


def test_unexpected_errors_propagate(caplog):
    class BrokenEngine:
        def query_license_text(self, text):
            raise RuntimeError("boom")

    with caplog.at_level("ERROR", logger="licensedetect"):
        with pytest.raises(RuntimeError, match="boom"):
            DetectionPipeline(MemoryFiler({"LICENSE": "MIT"}), _config(max_workers=1), engine=BrokenEngine()).run()

    assert "Candidate scoring failed: boom" in caplog.text


def test_concurrent_runs_keep_their_own_warnings(caplog):
    pipeline = DetectionPipeline(MemoryFiler({"a.jl": "# one\n", "b.jl": "# two\n"}), _config(max_workers=2))
    results = []

    with caplog.at_level("WARNING", logger="licensedetect"):
        threads = [threading.Thread(target=lambda: results.append(pipeline.run())) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

    assert [r.stage for r in results] == [Stage.NOT_FOUND, Stage.NOT_FOUND]
    warnings = [r for r in caplog.records if "No comment syntax" in r.getMessage()]
    assert len(warnings) == 2


def test_ranked_and_as_dict():
    result = DetectionResult(licenses={"MIT": 0.8, "ISC": 0.9, "0BSD": 0.8}, stage=Stage.README)

    assert result.ranked() == [("ISC", 0.9), ("0BSD", 0.8), ("MIT", 0.8)]
    assert result.as_dict() == {"licenses": {"ISC": 0.9, "0BSD": 0.8, "MIT": 0.8}, "stage": "readme"}


def test_invalid_config_is_rejected():
    cfg = DetectorConfig()
    cfg.matching.min_similarity = 2.0

    with pytest.raises(ValueError):
        DetectionPipeline(MemoryFiler({}), cfg)


def test_detect_path_directory_and_zip(tmp_path):
    repo = tmp_path / "repo"
    repo.mkdir()
    (repo / "LICENSE").write_text(_license_text("ISC.txt"), encoding="utf-8")
    archive = tmp_path / "repo.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("repo-main/LICENSE", _license_text("ISC.txt"))
        zf.writestr("repo-main/src/lib.rs", "fn main() {}\n")

    assert detect_path(repo, _config())["ISC"] == 1.0
    assert detect_path(archive, _config())["ISC"] == 1.0


def test_detect_path_rejects_plain_file(tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("x", encoding="utf-8")

    with pytest.raises(FilerError):
        detect_path(target, _config())
