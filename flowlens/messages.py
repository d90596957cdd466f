"""Message catalogs and the phrase localizer.

Narration produces `Phrase` values (a catalog key plus arguments) and never
touches a catalog itself; `localize` turns them into text with whatever
`t(key, vars)` function the caller passes in.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from loguru import logger

Translate = Callable[..., str]

EN: Dict[str, str] = {
    # Steps view
    "steps.variable": "Prepare variable",
    "steps.return": "Return result",
    "steps.important_call": "Important: {callee}",
    "steps.run_tool": "Run tool: {callee}",
    "steps.package": "Package: {name}",
    "steps.expression": "Run code",
    "steps.condition": "Condition",
    "steps.loop": "Loop",
    "steps.error_handling": "Error handling",
    "steps.unknown": "unknown: {type}",
    "steps.invalid": "{kind} (invalid)",
    "steps.then": "Then",
    "steps.else": "Else",
    "steps.loop_body": "Loop body",
    "steps.try_block": "Try",
    "steps.catch_block": "On error ({name})",
    "steps.catch_block_plain": "On error",
    "steps.finally_block": "Finally",
    "steps.no_op": "(no-op)",
    "steps.more": "{count} more",
    "steps.simple.goto": "Go to page",
    "steps.simple.click": "Click element",
    "steps.simple.type": "Enter text",
    "steps.simple.get_text": "Get text",
    "steps.simple.variable": "Prepare variable {name}",
    "steps.simple.return": "Return result",
    "steps.error.no_declarations": "No declarations",
    "steps.error.no_expression": "No expression",
    "steps.error.missing_test": "Missing test or consequent",
    "steps.error.missing_body": "Missing loop body",
    "steps.error.missing_try": "Missing try block",
    "steps.error.no_body": "No body",
    "steps.error.too_deep": "Nesting deeper than {max} levels is not shown",
    "steps.error.render_failed": "Could not render statement: {error}",
    # Actions view
    "actions.navigation": "Page navigation",
    "actions.navigation_description": "Open a web page",
    "actions.navigation_with_url": "Open {url}",
    "actions.navigation_readable": "Navigate to a web page",
    "actions.interaction": "Page interaction",
    "actions.interaction_description": "Operate on elements of the page",
    "actions.interaction_readable": "Interact with the page",
    "actions.data_extraction": "Data extraction",
    "actions.data_extraction_description": "Read information from the page",
    "actions.data_extraction_readable": "Extract data from the page",
    "actions.control_flow": "Control flow",
    "actions.control_flow_description": "Branch or repeat processing",
    "actions.control_flow_readable": "Control the flow of processing",
    "actions.if_statement": "Conditional branch",
    "actions.if_description": "Check whether {condition}",
    "actions.for_loop": "Repeat",
    "actions.for_description": "Repeat a fixed number of times",
    "actions.while_loop": "Repeat while",
    "actions.while_description": "Repeat while {condition}",
    "actions.for_of_loop": "Repeat for each item",
    "actions.for_of_description": "Process every item in turn",
    "actions.try_statement": "Error handling",
    "actions.try_description": "Run operations that may fail",
    "actions.switch_statement": "Branch by value",
    "actions.switch_description": "Choose what to do from the value of `{value}`",
    "actions.return": "Return result",
    "actions.return_description": "Return the result of the workflow",
    "actions.return_readable": "Return the result",
    "actions.prepare_variable": "Prepare variable `{name}`",
    "actions.prepare_description": "Prepare `{name}` for later steps",
    "actions.computation": "Computation",
    "actions.computation_description": "Compute a value",
    "actions.computation_readable": "Run a computation",
    "actions.check_condition": "Check the condition",
    "actions.execute_action": "Execute the action",
    # Narration
    "describe.create_page": "create page `{name}`",
    "describe.store_title": "store page title in `{name}`",
    "describe.store_text": "store extracted text in `{name}`",
    "describe.assign": "`{name} = {value}`",
    "describe.prepare": "prepare `{name}`",
    "describe.navigate_to": "navigate to `{url}`",
    "describe.navigate": "navigate to given URL",
    "describe.click": "click element",
    "describe.fill": "fill field",
    "describe.log": "print `{args}`",
    "describe.log_plain": "print information to the console",
    "describe.push": "append `{value}` to `{array}`",
    "describe.push_plain": "append an element to an array",
    "describe.execute": "execute: `{code}`",
    "describe.execute_operation": "execute operation",
    "describe.return_value": "return `{value}`",
    "describe.return": "return result",
    "describe.check_condition": "check condition",
    "describe.repeat": "repeat",
    "describe.handle_errors": "handle errors",
    "describe.choose_branch": "choose a branch",
    "describe.condition": "`{text}`",
    "describe.if": "if {condition} then:",
    "describe.else": "otherwise:",
    "describe.else_if": "otherwise, check the next condition:",
    "describe.loop": "repeat:",
    "describe.loop_times": "repeat a fixed number of times:",
    "describe.loop_while": "while {condition} repeat:",
    "describe.loop_do_while": "repeat, then continue while {condition}:",
    "describe.loop_each_element": "for each element repeat:",
    "describe.loop_each_property": "for each property repeat:",
    "describe.try": "operation that may fail:",
    "describe.catch": "if an error occurs (`{name}`):",
    "describe.error_name": "error",
    "describe.finally": "always finally:",
    "describe.switch": "depending on `{value}`:",
    "describe.case": "case `{value}`:",
    "describe.default_case": "in any other case:",
    "op.eq": "equals",
    "op.ne": "differs from",
    "op.ge": "at least",
    "op.le": "at most",
    "op.gt": "greater than",
    "op.lt": "less than",
    "op.and": "and",
    "op.or": "or",
}

JA: Dict[str, str] = {
    "steps.variable": "変数を準備",
    "steps.return": "結果を返す",
    "steps.important_call": "重要処理: {callee}",
    "steps.run_tool": "ツールを実行: {callee}",
    "steps.package": "パッケージ: {name}",
    "steps.expression": "処理を実行",
    "steps.condition": "条件分岐",
    "steps.loop": "繰り返し",
    "steps.error_handling": "エラー処理",
    "steps.unknown": "不明な処理: {type}",
    "steps.invalid": "{kind} (invalid)",
    "steps.then": "条件を満たす場合",
    "steps.else": "それ以外の場合",
    "steps.loop_body": "繰り返す処理",
    "steps.try_block": "通常実行",
    "steps.catch_block": "エラーが発生した場合 ({name})",
    "steps.catch_block_plain": "エラーが発生した場合",
    "steps.finally_block": "最後に実行",
    "steps.no_op": "（処理なし）",
    "steps.more": "他 {count} 件",
    "steps.simple.goto": "ページに移動",
    "steps.simple.click": "要素をクリック",
    "steps.simple.type": "テキストを入力",
    "steps.simple.get_text": "テキストを取得",
    "steps.simple.variable": "変数 {name} を準備",
    "steps.simple.return": "結果を返す",
    "steps.error.no_declarations": "宣言がありません",
    "steps.error.no_expression": "式がありません",
    "steps.error.missing_test": "条件または処理がありません",
    "steps.error.missing_body": "繰り返す処理がありません",
    "steps.error.missing_try": "try ブロックがありません",
    "steps.error.no_body": "本体がありません",
    "steps.error.too_deep": "{max} 階層より深い入れ子は表示されません",
    "steps.error.render_failed": "処理を表示できません: {error}",
    "actions.navigation": "ページ移動",
    "actions.navigation_description": "ウェブページを開く",
    "actions.navigation_with_url": "{url} を開く",
    "actions.navigation_readable": "ウェブページに移動",
    "actions.interaction": "ページ操作",
    "actions.interaction_description": "ページ上の要素を操作する",
    "actions.interaction_readable": "ページを操作",
    "actions.data_extraction": "データ取得",
    "actions.data_extraction_description": "ページから情報を取得する",
    "actions.data_extraction_readable": "ページからデータを取得",
    "actions.control_flow": "制御フロー",
    "actions.control_flow_description": "処理を分岐または繰り返す",
    "actions.control_flow_readable": "処理の流れを制御",
    "actions.if_statement": "条件分岐",
    "actions.if_description": "{condition} かどうかを確認",
    "actions.for_loop": "繰り返し",
    "actions.for_description": "指定回数繰り返す",
    "actions.while_loop": "条件付き繰り返し",
    "actions.while_description": "{condition} の間繰り返す",
    "actions.for_of_loop": "要素ごとの繰り返し",
    "actions.for_of_description": "各要素を順番に処理する",
    "actions.try_statement": "エラー処理",
    "actions.try_description": "失敗する可能性のある処理を実行する",
    "actions.switch_statement": "値による分岐",
    "actions.switch_description": "`{value}` の値によって処理を選ぶ",
    "actions.return": "結果を返す",
    "actions.return_description": "ワークフローの結果を返す",
    "actions.return_readable": "結果を返却",
    "actions.prepare_variable": "変数 `{name}` を準備",
    "actions.prepare_description": "後の処理のために `{name}` を準備",
    "actions.computation": "計算",
    "actions.computation_description": "値を計算する",
    "actions.computation_readable": "計算を実行",
    "actions.check_condition": "条件を確認",
    "actions.execute_action": "処理を実行",
    "describe.create_page": "新しいブラウザページ `{name}` を作成",
    "describe.store_title": "ページのタイトルを取得して `{name}` に保存",
    "describe.store_text": "要素のテキストを取得して `{name}` に保存",
    "describe.assign": "`{name} = {value}` として準備",
    "describe.prepare": "`{name}` を準備",
    "describe.navigate_to": "ウェブページ `{url}` に移動",
    "describe.navigate": "指定されたURLに移動",
    "describe.click": "要素をクリック",
    "describe.fill": "テキストを入力",
    "describe.log": "`{args}` を出力",
    "describe.log_plain": "コンソールに情報を出力",
    "describe.push": "`{array}` に `{value}` を追加",
    "describe.push_plain": "配列に要素を追加",
    "describe.execute": "`{code}` を実行",
    "describe.execute_operation": "処理を実行",
    "describe.return_value": "`{value}` を返す",
    "describe.return": "実行結果を返却",
    "describe.check_condition": "条件を確認",
    "describe.repeat": "繰り返し処理",
    "describe.handle_errors": "エラーハンドリング",
    "describe.choose_branch": "分岐を選択",
    "describe.condition": "`{text}`",
    "describe.if": "もし{condition}なら：",
    "describe.else": "そうでなければ：",
    "describe.else_if": "そうでなければ、次の条件を確認：",
    "describe.loop": "繰り返し処理：",
    "describe.loop_times": "指定回数繰り返す：",
    "describe.loop_while": "{condition}の間、繰り返す：",
    "describe.loop_do_while": "繰り返し、{condition}の間続ける：",
    "describe.loop_each_element": "各要素に対して繰り返す：",
    "describe.loop_each_property": "各プロパティに対して繰り返す：",
    "describe.try": "エラーが発生する可能性のある処理：",
    "describe.catch": "もしエラーが発生したら（{name}）：",
    "describe.error_name": "エラー",
    "describe.finally": "最後に必ず実行：",
    "describe.switch": "`{value}` の値によって：",
    "describe.case": "`{value}` の場合：",
    "describe.default_case": "それ以外の場合：",
    "op.eq": "が",
    "op.ne": "が異なる",
    "op.ge": "以上",
    "op.le": "以下",
    "op.gt": "より大きい",
    "op.lt": "より小さい",
    "op.and": "かつ",
    "op.or": "または",
}

CATALOGS: Dict[str, Dict[str, str]] = {"en": EN, "ja": JA}
DEFAULT_LOCALE = "en"


class _SafeVars(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


class Translator:
    """`t(key, vars=None)` over a catalog with a fallback catalog.

    Unknown keys come back unchanged and missing variables render as
    `{name}`, so a bad catalog entry never breaks an explanation.
    """

    def __init__(self, catalog: Mapping[str, str], fallback: Optional[Mapping[str, str]] = None):
        self.catalog = catalog
        self.fallback = fallback or {}

    def __call__(self, key: str, vars: Optional[Mapping[str, Any]] = None) -> str:
        template = self.catalog.get(key)
        if template is None:
            template = self.fallback.get(key, key)
        if not vars:
            return template
        try:
            return template.format_map(_SafeVars(vars))
        except (ValueError, IndexError, AttributeError, KeyError) as e:
            logger.debug("bad template for {}: {}", key, e)
            return template

    t = __call__


def get_translator(locale: str = DEFAULT_LOCALE) -> Translator:
    catalog = CATALOGS.get(locale)
    if catalog is None:
        logger.debug("no catalog for locale {}, using {}", locale, DEFAULT_LOCALE)
        catalog = CATALOGS[DEFAULT_LOCALE]
    return Translator(catalog, CATALOGS[DEFAULT_LOCALE])


# ─── Phrases ────────────────────────────────────────────────────
@dataclass(frozen=True)
class Phrase:
    key: str
    args: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Joined:
    """Parts rendered one after another; parts may be text or phrases."""
    parts: Tuple[Any, ...] = ()
    separator: str = " "
    prefix: str = ""
    suffix: str = ""


Message = Union[str, Phrase, Joined]

EMPTY = Joined()


def localize(message: Message, t: Translate) -> str:
    """Render a phrase tree; a fragment that fails to render becomes ""."""
    try:
        if isinstance(message, Phrase):
            return t(message.key, {k: localize(v, t) for k, v in message.args.items()})
        if isinstance(message, Joined):
            text = message.separator.join(localize(p, t) for p in message.parts)
            if not message.parts:
                return ""
            return message.prefix + text + message.suffix
        return "" if message is None else str(message)
    except Exception as e:
        logger.debug("could not localize {!r}: {}", message, e)
        return ""


def indent(message: Message, prefix: str) -> Joined:
    if message == EMPTY:
        return EMPTY
    return Joined((message,), prefix=prefix)
