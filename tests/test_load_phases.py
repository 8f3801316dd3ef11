from task_orchestrator.core.errors import TaskLoadError
from task_orchestrator.core.io.load_phases import load_phases


def test_load_yaml_success():
    doc = load_phases("examples/diamond.yaml")
    assert doc["schema_version"] == "0.1.0"
    assert isinstance(doc["phases"], list)
    assert doc["__file__"].endswith("diamond.yaml")


def test_load_json_bare_list():
    doc = load_phases("examples/phases.json")
    assert doc["schema_version"] is None
    assert [p["id"] for p in doc["phases"]] == ["only"]


def test_load_missing_file():
    try:
        load_phases("examples/does-not-exist.yaml")
        assert False, "expected TaskLoadError"
    except TaskLoadError as e:
        assert e.code == "E_FILE_NOT_FOUND"


def test_load_unsupported_format(tmp_path):
    p = tmp_path / "phases.txt"
    p.write_text("hello", encoding="utf-8")
    try:
        load_phases(str(p))
        assert False, "expected TaskLoadError"
    except TaskLoadError as e:
        assert e.code == "E_UNSUPPORTED_FORMAT"


def test_load_yaml_parse_error(tmp_path):
    p = tmp_path / "broken.yaml"
    p.write_text("phases: [\n  - id: a\n", encoding="utf-8")
    try:
        load_phases(str(p))
        assert False, "expected TaskLoadError"
    except TaskLoadError as e:
        assert e.code == "E_YAML_PARSE"
        assert e.file == str(p)


def test_load_scalar_top_level(tmp_path):
    p = tmp_path / "scalar.json"
    p.write_text("42", encoding="utf-8")
    try:
        load_phases(str(p))
        assert False, "expected TaskLoadError"
    except TaskLoadError as e:
        assert e.code == "E_INVALID_TOP_LEVEL"
