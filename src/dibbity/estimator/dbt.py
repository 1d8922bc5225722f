"""dbtコマンド実行モジュール。

dbtプロジェクトのディレクトリでdbt（デフォルトでは ``poetry run dbt``）を実行し、
モデルのコンパイルや一覧取得を行います。
"""

import json
import logging
import shlex
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence, Union

from dibbity.utils.errors import DbtCommandError

logger = logging.getLogger(__name__)


class DbtOptions:
    """dbtコマンドの引数を組み立てるためのオプション。"""

    def __init__(
        self,
        command: str,
        select: Optional[Sequence[str]] = None,
        defer: bool = False,
        empty: bool = False,
        state_dir: str = "target_prod",
    ):
        """dbtオプションを初期化します。

        Args:
            command: 実行するdbtサブコマンド（compile, ls など）
            select: 対象モデルのリスト
            defer: --defer --state <state_dir> --favor-state を付与するかどうか
            empty: --empty を付与するかどうか
            state_dir: --defer時に参照するステートディレクトリ
        """
        self.command = command
        self.select = list(select or [])
        self.defer = defer
        self.empty = empty
        self.state_dir = state_dir

    def build_args(self) -> List[str]:
        """dbtに渡す引数のリストを返します。"""
        args = [self.command]
        if self.select:
            args.append("--select")
            args.extend(self.select)

        if self.defer:
            args.extend(["--defer", "--state", self.state_dir, "--favor-state"])

        if self.empty:
            args.append("--empty")

        return args


def parse_ls_output(output: str) -> List[str]:
    """``dbt ls --output json --output-keys name`` の出力からモデル名を取り出します。

    出力は1行に1つのJSONオブジェクトで、空行は無視します。

    Raises:
        DbtCommandError: JSONとして解析できない行がある場合
    """
    names = []
    for line in output.strip().splitlines():
        if not line.strip():
            continue
        try:
            item = json.loads(line)
        except json.JSONDecodeError as e:
            raise DbtCommandError(
                ["dbt", "ls"], output=f"dbt lsの出力を解析できません: {line!r} ({e})"
            )
        if isinstance(item, dict) and item.get("name"):
            names.append(item["name"])
    return names


class DbtRunner:
    """dbtプロジェクトでdbtコマンドを実行するクラス。"""

    def __init__(
        self,
        dbt_dir: Union[str, Path],
        dbt_command: str = "poetry run dbt",
        state_dir: str = "target_prod",
    ):
        """dbtランナーを初期化します。

        Args:
            dbt_dir: dbtプロジェクトのディレクトリ
            dbt_command: dbtの起動コマンド（シェルと同様に分割されます）
            state_dir: --defer時に参照するステートディレクトリ
        """
        self.dbt_dir = Path(dbt_dir)
        self.dbt_command = shlex.split(dbt_command)
        self.state_dir = state_dir
        logger.debug(
            f"dbtランナーを初期化しました: ディレクトリ={self.dbt_dir}, コマンド={dbt_command}"
        )

    def run(self, args: Sequence[str]) -> str:
        """dbtコマンドを実行し、標準出力を返します。

        Args:
            args: dbtに渡す引数

        Returns:
            標準出力の内容

        Raises:
            DbtCommandError: コマンドが見つからない、または終了コードが0以外の場合
        """
        cmd = self.dbt_command + list(args)
        logger.debug(f"実行します: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                cwd=str(self.dbt_dir),
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise DbtCommandError(cmd, output=str(e))

        if result.returncode != 0:
            raise DbtCommandError(
                cmd, result.returncode, result.stderr.strip() or result.stdout
            )

        return result.stdout

    def compile_models(self, options: DbtOptions) -> None:
        """選択したモデルをコンパイルします。"""
        options.command = "compile"
        options.state_dir = self.state_dir
        logger.info(f"モデルをコンパイルします: {', '.join(options.select)}")
        self.run(options.build_args())

    def list_models(self, select: Sequence[str]) -> List[str]:
        """セレクタに該当するモデル名の一覧を取得します。

        Args:
            select: dbtのセレクタ（モデル名、+model、tag:xxx など）

        Returns:
            モデル名のリスト（dbt lsの出力順）
        """
        options = DbtOptions("ls", select=select, state_dir=self.state_dir)
        args = options.build_args() + [
            "--resource-type",
            "model",
            "--output",
            "json",
            "--output-keys",
            "name",
            "--quiet",
        ]
        names = parse_ls_output(self.run(args))
        logger.debug(f"dbt lsの結果: {names}")
        return names
