"""Tests for configuration loading."""

import pytest
import yaml
from pydantic import ValidationError

from lessongate.config import SUPPORTED_LANGUAGES, Config, ValidationConfig, find_config_file, load_config


class TestDefaults:
    def test_thresholds(self):
        config = Config()

        assert config.analysis.min_word_count == 200
        assert config.analysis.min_quality_score == 0.6
        assert config.validation.min_quality_score == 60.0
        assert config.validation.max_advertising_ratio == 0.3
        assert config.retry.max_retry_attempts == 3
        assert config.generation.api_key is None
        assert config.validation.supported_languages == list(SUPPORTED_LANGUAGES)

    def test_language_codes_are_normalised(self):
        assert ValidationConfig(supported_languages=["EN", "Es"]).supported_languages == ["en", "es"]

    def test_empty_language_list_rejected(self):
        with pytest.raises(ValidationError):
            ValidationConfig(supported_languages=[])


class TestLoading:
    def test_from_yaml(self, tmp_path):
        path = tmp_path / "lessongate.yaml"
        path.write_text(yaml.safe_dump({"validation": {"min_word_count": 300, "strict_mode": True}}))

        config = Config.from_yaml(path)

        assert config.validation.min_word_count == 300
        assert config.validation.strict_mode
        assert config.analysis.min_word_count == 200

    def test_empty_yaml_gives_defaults(self, tmp_path):
        path = tmp_path / "lessongate.yaml"
        path.write_text("")

        assert Config.from_yaml(path).retry.max_retry_attempts == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Config.from_yaml(tmp_path / "missing.yaml")

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("LESSONGATE_RETRY__MAX_RETRY_ATTEMPTS", "5")
        monkeypatch.setenv("LESSONGATE_GENERATION__API_KEY", "sk-env")

        config = Config()

        assert config.retry.max_retry_attempts == 5
        assert config.generation.api_key.get_secret_value() == "sk-env"

    def test_discovers_config_in_working_directory(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert find_config_file() is None
        assert load_config().project_name == "LessonGate"

        (tmp_path / "lessongate.yml").write_text(yaml.safe_dump({"project_name": "Classroom"}))

        assert find_config_file() == tmp_path / "lessongate.yml"
        assert load_config().project_name == "Classroom"
