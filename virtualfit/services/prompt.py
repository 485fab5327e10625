"""Prompt template loading and assembly service."""

from pathlib import Path

import yaml

from virtualfit.schemas.generation import EnvironmentSettings, ModelSettings

# Prompt templates directory
PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"
DEFAULT_TEMPLATE_VERSION = "v1"

# Cache loaded templates
_template_cache: dict[str, dict] = {}


def load_template(version: str = DEFAULT_TEMPLATE_VERSION) -> dict:
    """Load a prompt template YAML file by version."""
    if version in _template_cache:
        return _template_cache[version]

    filename = version.replace(".", "_") + ".yaml"
    filepath = PROMPTS_DIR / filename

    if not filepath.exists():
        raise FileNotFoundError(f"Prompt template not found: {filepath}")

    with open(filepath, "r", encoding="utf-8") as f:
        template = yaml.safe_load(f)

    _template_cache[version] = template
    return template


def describe_age(age_range: str, template: dict) -> str:
    """Map a raw age bucket ("26-35") to a descriptive term ("adult")."""
    default = template.get("default_age", "adult")
    return template.get("ages", {}).get(age_range, default)


def describe_setting(description: str, template: dict) -> str:
    """Look up an environment preset; unknown values get a generic sentence."""
    preset = template.get("settings", {}).get(description)
    if preset:
        return preset.strip()
    return template["setting_fallback"].format(description=description)


def build_prompt(
    model: ModelSettings,
    environment: EnvironmentSettings,
    template_version: str = DEFAULT_TEMPLATE_VERSION,
) -> str:
    """Render the model and environment settings into the generation prompt.

    Identical inputs always produce byte-identical output. Lighting and lens
    only ever affect the ``Technical details:`` section.
    """
    template = load_template(template_version)

    subject = template["subject"].strip().format(
        gender=model.gender,
        age=describe_age(model.age_range, template),
        ethnicity=model.ethnicity,
        body_type=model.body_type,
    )
    setting = f"Setting: {describe_setting(environment.description, template)}"
    style = f"Style: {template.get('style', '').strip()}"
    technical = "Technical details: " + template["technical"].strip().format(
        baseline=template.get("lighting_baseline", "").strip(),
        lighting=environment.lighting,
        lens=environment.lens_style,
    )

    sections = [subject, setting, style, technical]
    return "\n\n".join(s for s in sections if s.strip())
