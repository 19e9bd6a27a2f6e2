import json

import pytest

from thumbcanvas.normalize import normalize_config
from thumbcanvas.template_loader import (
    ThumbnailTemplate,
    apply_template,
    list_builtin_templates,
    load_template,
    normalize_template_dict,
)


def test_builtin_templates_are_listed() -> None:
    assert list_builtin_templates() == [
        "bold_finance",
        "classic",
        "gaming_epic",
        "health_guru",
        "lifestyle_minimal",
        "tech_innovation",
    ]


@pytest.mark.parametrize("name", ["classic", "bold_finance", "tech_innovation"])
def test_builtin_templates_load_and_normalize(name) -> None:
    template = load_template(name)
    assert template.key == name
    assert template.name
    config = normalize_config(template.config)
    assert config.background_color.startswith("linear-gradient(")
    assert len(config.text_lines) == 3


def test_missing_builtin_raises() -> None:
    with pytest.raises(FileNotFoundError):
        load_template("no_such_template")


def test_load_template_from_file(tmp_path) -> None:
    path = tmp_path / "mine.json"
    path.write_text(
        json.dumps({"name": "Mine", "tags": "a, b,", "config": {"layout": "soloRight"}}),
        encoding="utf-8",
    )
    template = load_template(str(path))
    assert template.key == "mine"
    assert template.name == "Mine"
    assert template.tags == ["a", "b"]
    assert template.config == {"layout": "soloRight"}


def test_normalize_template_dict_tolerates_missing_fields() -> None:
    template = normalize_template_dict("bare", {"config": "not a dict"})
    assert template.name == "bare"
    assert template.config == {}
    assert template.tags == []


def test_apply_template_keeps_unrelated_fields() -> None:
    config = normalize_config(
        {"width": 640, "height": 360, "overlays": [{"id": "keep", "text": "stay", "x": 1, "y": 2}]}
    )
    template = ThumbnailTemplate(key="t", name="T", config={"layout": "twoFace", "accentColor": "blue"})

    applied = apply_template(config, template)

    assert (applied.width, applied.height) == (640, 360)
    assert applied.layout == "twoFace"
    assert applied.accent_color == "blue"
    assert [overlay.id for overlay in applied.overlays] == ["keep"]
    # the original is untouched
    assert config.layout == "centered"


def test_apply_template_accepts_plain_dict() -> None:
    applied = apply_template(normalize_config({}), {"backgroundColor": "#123456"})
    assert applied.background_color == "#123456"
