"""dbtモデル解決モジュール。

モデル名からSQLファイルのパスを探し、SQLを読み込みます。
"""

import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Union

from dibbity.utils.errors import ModelNotFoundError

logger = logging.getLogger(__name__)


class Model:
    """ドライラン対象の1モデルを表すクラス。"""

    def __init__(self, name: str, path: Path, sql: str = ""):
        self.name = name
        self.path = path
        self.sql = sql
        self.bytes_processed = 0
        # ドライラン前はNone
        self.ok: Optional[bool] = None
        self.error: Optional[str] = None

    def __repr__(self) -> str:
        return f"Model(name={self.name!r}, path={str(self.path)!r}, ok={self.ok!r})"


def parse_selection(values: Iterable[str]) -> List[str]:
    """--selectの値と位置引数をモデル名のリストにまとめます。

    カンマ区切りを展開し、順序を保ったまま重複を取り除きます。

    例:
        ["orders,customers", "orders", "payments"] -> ["orders", "customers", "payments"]
    """
    selected: List[str] = []
    for value in values:
        for name in value.split(","):
            name = name.strip()
            if name and name not in selected:
                selected.append(name)
    return selected


def find_model_path(
    model_name: str, dbt_dir: Union[str, Path], sub_dir: str = "target"
) -> Path:
    """dbt_dir/sub_dir 以下から ``<model_name>.sql`` を探します。

    ディレクトリは名前順に走査し、最初に見つかったファイルを返します。

    Args:
        model_name: モデル名
        dbt_dir: dbtプロジェクトのディレクトリ
        sub_dir: 探索するサブディレクトリ（コンパイル済みSQLは target、元のモデルは models）

    Returns:
        見つかったSQLファイルのパス

    Raises:
        ModelNotFoundError: 探索ディレクトリが存在しない、またはモデルが見つからない場合
    """
    search_dir = Path(dbt_dir) / sub_dir
    logger.debug(f"モデル {model_name} を {search_dir} から探します")

    if not search_dir.is_dir():
        raise ModelNotFoundError(f"探索ディレクトリが存在しません: {search_dir}")

    model_filename = f"{model_name}.sql"

    def raise_walk_error(error: OSError) -> None:
        raise ModelNotFoundError(f"ディレクトリの走査に失敗しました: {search_dir} - {error}")

    for root, dirs, files in os.walk(search_dir, onerror=raise_walk_error):
        dirs.sort()
        if model_filename in files:
            path = Path(root) / model_filename
            logger.debug(f"モデル {model_name} が見つかりました: {path}")
            return path

    raise ModelNotFoundError(f"モデル '{model_name}' が見つかりません ({search_dir})")


def load_sql(path: Union[str, Path]) -> str:
    """SQLファイルを読み込みます。

    Raises:
        ModelNotFoundError: ファイルを読み込めない場合
    """
    logger.debug(f"SQLを読み込みます: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ModelNotFoundError(f"SQLファイルを読み込めません: {path} - {e}")


def resolve_models(
    model_names: Iterable[str], dbt_dir: Union[str, Path], sub_dir: str = "target"
) -> List[Model]:
    """モデル名のリストからSQLを読み込んだModelのリストを作成します。

    Args:
        model_names: モデル名（重複は取り除かれます）
        dbt_dir: dbtプロジェクトのディレクトリ
        sub_dir: 探索するサブディレクトリ

    Returns:
        Modelのリスト（指定順）
    """
    models = []
    for name in parse_selection(model_names):
        path = find_model_path(name, dbt_dir, sub_dir)
        models.append(Model(name, path, load_sql(path)))
    return models
