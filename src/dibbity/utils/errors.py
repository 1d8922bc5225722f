"""例外クラスモジュール。"""

from typing import List, Optional


class DibbityError(Exception):
    """dibbityが送出する例外の基底クラス。"""


class ConfigError(DibbityError):
    """設定ファイルや設定値に問題がある場合の例外。"""


class ModelNotFoundError(DibbityError):
    """モデルのSQLファイルが見つからない、または読み込めない場合の例外。"""


class DryRunError(DibbityError):
    """ドライランの実行またはレスポンスの解析に失敗した場合の例外。"""


class DbtCommandError(DibbityError):
    """dbtコマンドの実行に失敗した場合の例外。"""

    def __init__(
        self,
        command: List[str],
        returncode: Optional[int] = None,
        output: str = "",
    ):
        self.command = command
        self.returncode = returncode
        self.output = output

        message = f"dbtコマンドが失敗しました: {' '.join(command)}"
        if returncode is not None:
            message += f" (終了コード: {returncode})"
        if output:
            message += f"\n{output.strip()}"
        super().__init__(message)
