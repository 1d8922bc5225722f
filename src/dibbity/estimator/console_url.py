"""BigQueryコンソールURL生成モジュール。"""

import logging
from pathlib import Path
from typing import Tuple, Union

import jinja2

from dibbity.estimator.models import find_model_path
from dibbity.utils.config import DEFAULT_CONSOLE_URL_TEMPLATE, Settings, get_folder
from dibbity.utils.errors import ConfigError, DibbityError

logger = logging.getLogger(__name__)


class TableLocation:
    """モデルのパスから求めたBigQueryテーブルの位置。"""

    def __init__(self, dataset: str, table: str):
        self.dataset = dataset
        self.table = table

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TableLocation):
            return NotImplemented
        return (self.dataset, self.table) == (other.dataset, other.table)

    def __repr__(self) -> str:
        return f"TableLocation(dataset={self.dataset!r}, table={self.table!r})"


def parse_model_path(
    model_path: Union[str, Path], marker: str = "dags/templates/models/"
) -> TableLocation:
    """モデルのファイルパスからデータセット名とテーブル名を求めます。

    marker以降のパスを ``/`` で分割し、最後の要素をテーブル名、
    それより前の要素を ``_`` で連結したものをデータセット名とします。

    例:
        .../dags/templates/models/sales/daily/orders.sql
        -> dataset="sales_daily", table="orders"

    Args:
        model_path: モデルのSQLファイルのパス
        marker: データセットとテーブルを表す部分の直前にあるパス

    Returns:
        テーブルの位置

    Raises:
        DibbityError: markerが見つからない、または要素が3つ未満の場合
    """
    path_str = Path(model_path).as_posix()
    index = path_str.find(marker)
    if index == -1:
        raise DibbityError(
            f"モデルのパスに {marker} が含まれていません: {path_str}"
        )

    relevant = path_str[index + len(marker) :]
    if relevant.endswith(".sql"):
        relevant = relevant[: -len(".sql")]

    components = [c for c in relevant.split("/") if c]
    if len(components) <= 2:
        raise DibbityError(
            f"モデルのパスからプロジェクト・データセット・テーブルを特定できません: {path_str}"
        )

    return TableLocation(dataset="_".join(components[:-1]), table=components[-1])


def build_console_url(
    location: TableLocation,
    base_url: str,
    project_id: str,
    template: str = DEFAULT_CONSOLE_URL_TEMPLATE,
) -> str:
    """Jinja2テンプレートからBigQueryコンソールのURLを生成します。

    Raises:
        DibbityError: テンプレートが不正、または未定義の変数を参照している場合
    """
    try:
        url_template = jinja2.Template(template, undefined=jinja2.StrictUndefined)
        url = url_template.render(
            base_url=base_url,
            project_id=project_id,
            dataset=location.dataset,
            table=location.table,
        )
    except jinja2.TemplateError as e:
        raise DibbityError(f"コンソールURLのテンプレートが不正です: {e}")

    logger.debug(f"コンソールURL: {url}")
    return url


def resolve_console_url(settings: Settings, model_name: str) -> Tuple[TableLocation, str]:
    """モデル名からBigQueryコンソールのURLを求めます。

    dbtプロジェクトの models 以下からモデルのSQLファイルを探し、
    そのパスからデータセットとテーブルを特定します。

    Args:
        settings: 設定
        model_name: モデル名

    Returns:
        テーブルの位置とURLのタプル

    Raises:
        ConfigError: project-idが未設定の場合
    """
    if not settings.project_id:
        raise ConfigError(
            "project-idが設定されていません（設定ファイル・DIBBITY_PROJECT_ID・--project-idのいずれかで指定してください）"
        )

    dbt_dir = get_folder(settings)
    model_path = find_model_path(model_name, dbt_dir, "models")
    location = parse_model_path(model_path, settings.models_path_marker)
    url = build_console_url(
        location,
        settings.console_base_url,
        settings.project_id,
        settings.console_url_template,
    )
    return location, url
