import os
import sys

import pytest

REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
PIPELINE_DIR = os.path.join(REPO_ROOT, "pipeline")
if PIPELINE_DIR not in sys.path:
	sys.path.insert(0, PIPELINE_DIR)

from unrellib import pipeline_settings


#============================================
def test_load_settings_missing_file(tmp_path) -> None:
	"""
	Missing settings file should return empty settings.
	"""
	settings, resolved_path = pipeline_settings.load_settings(str(tmp_path / "missing.yaml"))
	assert settings == {}
	assert resolved_path.endswith("missing.yaml")


#============================================
def test_load_settings_reads_yaml(tmp_path) -> None:
	"""
	YAML settings should be parsed into nested mapping values.
	"""
	settings_path = tmp_path / "settings.yaml"
	settings_path.write_text(
		"github:\n"
		"  owner: acme\n"
		"  page_size: 50\n"
		"crawl:\n"
		"  workers: 4\n",
		encoding="utf-8",
	)
	settings, _ = pipeline_settings.load_settings(str(settings_path))
	assert pipeline_settings.get_github_owner(settings) == "acme"
	assert pipeline_settings.get_page_size(settings) == 50
	assert pipeline_settings.get_crawl_workers(settings) == 4


#============================================
def test_load_settings_rejects_non_mapping(tmp_path) -> None:
	settings_path = tmp_path / "settings.yaml"
	settings_path.write_text("- just\n- a list\n", encoding="utf-8")
	with pytest.raises(RuntimeError, match="must contain a mapping"):
		pipeline_settings.load_settings(str(settings_path))


#============================================
def test_defaults_when_settings_empty() -> None:
	assert pipeline_settings.get_github_owner({}) == ""
	assert pipeline_settings.get_github_owner({}, "fallback-org") == "fallback-org"
	assert pipeline_settings.get_page_size({}) == 100
	assert pipeline_settings.get_crawl_workers({}) == 1


#============================================
def test_get_setting_int_invalid_value_raises() -> None:
	"""
	Invalid integer setting should raise RuntimeError.
	"""
	settings = {"crawl": {"workers": "many"}}
	with pytest.raises(RuntimeError):
		pipeline_settings.get_setting_int(settings, ["crawl", "workers"], 1)


#============================================
def test_out_of_range_values_raise() -> None:
	with pytest.raises(RuntimeError, match="page_size"):
		pipeline_settings.get_page_size({"github": {"page_size": 500}})
	with pytest.raises(RuntimeError, match="workers"):
		pipeline_settings.get_crawl_workers({"crawl": {"workers": 0}})


#============================================
def test_get_github_token_requires_env(monkeypatch) -> None:
	"""
	A missing or blank token is a startup error.
	"""
	monkeypatch.delenv("GITHUB_TOKEN", raising=False)
	with pytest.raises(RuntimeError, match="GITHUB_TOKEN"):
		pipeline_settings.get_github_token()
	monkeypatch.setenv("GITHUB_TOKEN", "   ")
	with pytest.raises(RuntimeError):
		pipeline_settings.get_github_token()
	monkeypatch.setenv("GITHUB_TOKEN", " ghp_example \n")
	assert pipeline_settings.get_github_token() == "ghp_example"


#============================================
def test_template_path_env_overrides_settings(monkeypatch) -> None:
	settings = {"report": {"template_path": "from_settings"}}
	monkeypatch.delenv("TEMPLATE_PATH", raising=False)
	assert pipeline_settings.get_template_path(settings) == "from_settings"
	monkeypatch.setenv("TEMPLATE_PATH", "from_env")
	assert pipeline_settings.get_template_path(settings) == "from_env"
