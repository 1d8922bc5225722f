"""設定ユーティリティモジュール。

YAML設定ファイル・環境変数・コマンドラインオプションから設定値を組み立てます。
優先順位は コマンドラインオプション > 環境変数 > 設定ファイル > デフォルト値 です。
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from dibbity.utils.errors import ConfigError

logger = logging.getLogger(__name__)

# 環境変数のプレフィックス (例: DIBBITY_DBT_DIR)
ENV_PREFIX = "DIBBITY_"

# 設定ファイルの探索候補
CONFIG_CANDIDATES = [
    Path("dibbity.yml"),
    Path("dibbity.yaml"),
    Path("~/.dibbity.yml"),
    Path("~/.dibbity.yaml"),
]

DEFAULT_CONSOLE_URL_TEMPLATE = (
    "{{ base_url }}?p={{ project_id }}&d={{ dataset }}&t={{ table }}&page=table"
)

BACKENDS = ("bq", "api")

# 設定キーとデフォルト値 (キーは設定ファイル上の表記)
DEFAULTS: Dict[str, Any] = {
    "dbt-dir": None,
    "dbt-command": "poetry run dbt",
    "state-dir": "target_prod",
    "project-id": None,
    "location": None,
    "backend": "bq",
    "price-per-tib": 6.25,
    "console-base-url": "https://console.cloud.google.com/bigquery",
    "console-url-template": DEFAULT_CONSOLE_URL_TEMPLATE,
    "models-path-marker": "dags/templates/models/",
}


def _attr_name(key: str) -> str:
    return key.replace("-", "_")


def _env_name(key: str) -> str:
    return ENV_PREFIX + key.upper().replace("-", "_")


class Settings:
    """dibbityの設定値を保持するクラス。

    設定キーはハイフン区切り (``dbt-dir``) で、属性名はアンダースコア区切り
    (``dbt_dir``) でアクセスします。
    """

    def __init__(self, **values: Any):
        for key, default in DEFAULTS.items():
            setattr(self, _attr_name(key), default)
        self.source: Optional[Path] = None
        self.update(values)

    def update(self, values: Mapping[str, Any]) -> "Settings":
        """設定値を上書きします。

        値がNoneのキーは無視します（未指定のコマンドラインオプションなど）。

        Args:
            values: 設定キー（ハイフン・アンダースコアどちらでも可）と値の辞書

        Returns:
            自身のインスタンス

        Raises:
            ConfigError: 値の型が不正な場合
        """
        for key, value in values.items():
            if value is None:
                continue
            key = key.replace("_", "-")
            if key not in DEFAULTS:
                logger.warning(f"不明な設定キーを無視します: {key}")
                continue
            setattr(self, _attr_name(key), _coerce(key, value))
        return self

    def as_dict(self) -> Dict[str, Any]:
        return {key: getattr(self, _attr_name(key)) for key in DEFAULTS}

    def __repr__(self) -> str:
        return f"Settings({self.as_dict()!r})"


def _coerce(key: str, value: Any) -> Any:
    """設定値を適切な型に変換します。"""
    if key == "price-per-tib":
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ConfigError(f"price-per-tibは数値で指定してください: {value!r}")
    if key == "backend":
        value = str(value).lower()
        if value not in BACKENDS:
            raise ConfigError(
                f"backendは {', '.join(BACKENDS)} のいずれかを指定してください: {value}"
            )
        return value
    return str(value)


def find_config_file() -> Optional[Path]:
    """探索候補から最初に見つかった設定ファイルを返します。"""
    for candidate in CONFIG_CANDIDATES:
        path = candidate.expanduser()
        if path.is_file():
            return path
    return None


def read_config_file(path: Path) -> Dict[str, Any]:
    """YAML設定ファイルを読み込みます。

    Args:
        path: 設定ファイルのパス

    Returns:
        設定キーと値の辞書（空ファイルの場合は空の辞書）

    Raises:
        ConfigError: ファイルが読み込めない、またはYAMLとして不正な場合
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"設定ファイルを読み込めません: {path} - {e}")
    except yaml.YAMLError as e:
        raise ConfigError(f"設定ファイルの形式が不正です: {path} - {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"設定ファイルの内容はマッピングである必要があります: {path}")
    return data


def env_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """DIBBITY_で始まる環境変数から設定値を取得します。"""
    environ = os.environ if environ is None else environ
    overrides = {}
    for key in DEFAULTS:
        value = environ.get(_env_name(key))
        if value:
            overrides[key] = value
    return overrides


def load_settings(
    path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """設定ファイルと環境変数から設定を読み込みます。

    Args:
        path: 設定ファイルのパス（省略時は探索候補から検索）
        environ: 環境変数（省略時はos.environ）

    Returns:
        読み込まれた設定
    """
    settings = Settings()

    config_path = Path(path).expanduser() if path else find_config_file()
    if config_path is not None:
        logger.debug(f"設定ファイルを読み込みます: {config_path}")
        settings.update(read_config_file(config_path))
        settings.source = config_path
    else:
        logger.debug("設定ファイルが見つかりません。デフォルト値を使用します")

    settings.update(env_overrides(environ))
    return settings


def get_folder(settings: Settings) -> Path:
    """設定のdbt-dirからdbtプロジェクトのディレクトリを取得します。

    先頭の ``~/`` はユーザーのホームディレクトリに展開します。

    Args:
        settings: 設定

    Returns:
        dbtプロジェクトのディレクトリ

    Raises:
        ConfigError: dbt-dirが未設定、またはディレクトリが存在しない場合
    """
    dbt_dir = settings.dbt_dir
    logger.debug(f"dbtフォルダを使用します: {dbt_dir}")

    if not dbt_dir:
        raise ConfigError(
            "dbt-dirが設定されていません（設定ファイル・DIBBITY_DBT_DIR・--dbt-dirのいずれかで指定してください）"
        )

    if dbt_dir.startswith("~/"):
        try:
            home = Path.home()
        except RuntimeError as e:
            raise ConfigError(f"ホームディレクトリを取得できません: {e}")
        dbt_dir = str(home) + dbt_dir[1:]

    folder = Path(dbt_dir)
    if not folder.is_dir():
        raise ConfigError(f"dbtフォルダが存在しません: {folder}")
    return folder
