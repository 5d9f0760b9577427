import unittest

from hypothesis import given, settings
from hypothesis import strategies as st

from modelswitch.utils import switch_intent
from modelswitch.utils.switch_intent import (
    MARKUP_STRATEGIES,
    display_text,
    is_switch_intent,
    normalize_provider_code,
    parse_function_call_block,
    parse_provider_from_args,
    parse_switch_command,
    parse_switch_command_from_prompt,
    parse_tool_call_block,
    strip_tool_call_blocks,
)

_ALIASES = [
    ("deepseek", "deepseek"),
    ("DeepSeek", "deepseek"),
    ("glm", "zhipu"),
    ("GLM-4.7", "zhipu"),
    ("智谱", "zhipu"),
    ("zhipu", "zhipu"),
    ("openrouter", "openrouter"),
    ("OpenRouter", "openrouter"),
    ("claude", "claude"),
    ("Anthropic", "claude"),
]

# 不包含任何已知别名的填充文本
_filler = st.text(
    alphabet=st.characters(whitelist_categories=("Zs", "Nd"), whitelist_characters="xyz ,.!?"),
    max_size=20,
)


class TestNormalizeProviderCode(unittest.TestCase):
    def test_blank_is_none(self) -> None:
        self.assertIsNone(normalize_provider_code(None))
        self.assertIsNone(normalize_provider_code(""))
        self.assertIsNone(normalize_provider_code("   "))

    def test_unknown_code_passes_through_lowercased(self) -> None:
        self.assertEqual(normalize_provider_code("  Kimi "), "kimi")

    def test_first_family_wins(self) -> None:
        # deepseek 的优先级高于 openrouter
        self.assertEqual(normalize_provider_code("openrouter deepseek/deepseek-chat"), "deepseek")

    @given(prefix=_filler, suffix=_filler, alias=st.sampled_from(_ALIASES))
    @settings(max_examples=100)
    def test_alias_embedded_in_text(self, prefix, suffix, alias) -> None:
        raw, expected = alias
        self.assertEqual(normalize_provider_code(prefix + raw + suffix), expected)


class TestPromptShortCircuit(unittest.TestCase):
    def test_chinese_switch_verb(self) -> None:
        self.assertEqual(parse_switch_command_from_prompt("帮我切换到 DeepSeek"), "deepseek")

    def test_english_switch_to(self) -> None:
        self.assertEqual(parse_switch_command_from_prompt("please Switch To claude"), "claude")

    def test_starts_with_yong(self) -> None:
        self.assertEqual(parse_switch_command_from_prompt("用智谱"), "zhipu")

    def test_unknown_provider_uses_raw_text(self) -> None:
        self.assertEqual(parse_switch_command_from_prompt("换成 Kimi"), "换成 kimi")

    def test_no_intent(self) -> None:
        self.assertFalse(is_switch_intent("DeepSeek 和 Claude 哪个好？"))
        self.assertIsNone(parse_switch_command_from_prompt("DeepSeek 和 Claude 哪个好？"))
        self.assertIsNone(parse_switch_command_from_prompt(""))


class TestFunctionCallDialect(unittest.TestCase):
    def test_provider_code_from_json_args(self) -> None:
        reply = (
            "好的，马上为你切换。\n"
            "<FunctionCall>\n"
            "tool_name: switchModel\n"
            'tool_args: {"providerCode": "openrouter"}\n'
            "</FunctionCall>"
        )
        self.assertEqual(parse_function_call_block(reply), "openrouter")
        self.assertEqual(parse_switch_command(reply), "openrouter")
        self.assertEqual(display_text(reply), "好的，马上为你切换。")

    def test_tool_name_case_insensitive(self) -> None:
        reply = '<FunctionCall>tool_name: SWITCHMODEL\ntool_args: {"model": "GLM-4.7"}</FunctionCall>'
        self.assertEqual(parse_switch_command(reply), "zhipu")

    def test_other_tool_is_ignored(self) -> None:
        reply = '<FunctionCall>tool_name: getWeather\ntool_args: {"provider": "claude"}</FunctionCall>'
        self.assertIsNone(parse_switch_command(reply))

    def test_first_non_blank_field(self) -> None:
        reply = '<FunctionCall>tool_name: switchModel\ntool_args: {"providerCode": " ", "code": "deepseek"}</FunctionCall>'
        self.assertEqual(parse_switch_command(reply), "deepseek")

    def test_invalid_json_falls_back_to_key_value(self) -> None:
        reply = "<FunctionCall>tool_name: switchModel\ntool_args: {provider: \"claude\",}</FunctionCall>"
        self.assertEqual(parse_switch_command(reply), "claude")

    def test_missing_args(self) -> None:
        self.assertIsNone(parse_switch_command("<FunctionCall>tool_name: switchModel</FunctionCall>"))

    def test_unclosed_block(self) -> None:
        self.assertIsNone(parse_switch_command('<FunctionCall>tool_name: switchModel tool_args: {"code": "x"}'))


class TestToolCallDialect(unittest.TestCase):
    def test_model_flag(self) -> None:
        reply = '[TOOL_CALL]\n{tool => "switchModel", args => {--model "deepseek"}}\n[/TOOL_CALL]'
        self.assertEqual(parse_tool_call_block(reply), "deepseek")
        self.assertEqual(parse_switch_command(reply), "deepseek")

    def test_lowercase_tags_and_json_args(self) -> None:
        reply = '[tool_call]{tool => "switchModel", args => {"provider": "OpenRouter"}}[/tool_call]'
        self.assertEqual(parse_switch_command(reply), "openrouter")

    def test_arrow_key_value_fallback(self) -> None:
        reply = '[TOOL_CALL]{tool => switchModel, args => {providerCode => "claude"}}[/TOOL_CALL]'
        self.assertEqual(parse_switch_command(reply), "claude")

    def test_function_call_dialect_tried_first(self) -> None:
        reply = (
            '<FunctionCall>tool_name: switchModel\ntool_args: {"code": "claude"}</FunctionCall>'
            '[TOOL_CALL]{tool => "switchModel", args => {--model "deepseek"}}[/TOOL_CALL]'
        )
        self.assertEqual(parse_switch_command(reply), "claude")
        self.assertEqual(parse_switch_command(reply, strategies=MARKUP_STRATEGIES[1:]), "deepseek")


class TestArgsParsing(unittest.TestCase):
    def test_non_object_json(self) -> None:
        self.assertIsNone(parse_provider_from_args('["deepseek"]'))

    def test_nested_values_ignored(self) -> None:
        self.assertIsNone(parse_provider_from_args('{"provider": {"code": "deepseek"}}'))

    def test_flag_in_non_json(self) -> None:
        self.assertEqual(parse_provider_from_args('{--provider "zhipu"}'), "zhipu")


class TestStripping(unittest.TestCase):
    def test_all_blocks_removed(self) -> None:
        text = 'A<FunctionCall>x</FunctionCall> B [TOOL_CALL]y[/TOOL_CALL]'
        self.assertEqual(strip_tool_call_blocks(text), "A B")

    def test_markup_only_reply_keeps_original(self) -> None:
        text = '<FunctionCall>tool_name: switchModel</FunctionCall>'
        self.assertEqual(strip_tool_call_blocks(text), "")
        self.assertEqual(display_text(text), text)

    @given(text=st.text(max_size=200))
    @settings(max_examples=200)
    def test_parsing_is_idempotent_and_never_raises(self, text) -> None:
        self.assertEqual(parse_switch_command(text), parse_switch_command(text))
        self.assertEqual(parse_switch_command_from_prompt(text), parse_switch_command_from_prompt(text))


class TestModuleDocs(unittest.TestCase):
    def test_module_docstrings(self) -> None:
        from modelswitch.utils import openrouter_compat

        self.assertIn("Switch intent extraction", switch_intent.__doc__ or "")
        self.assertTrue((openrouter_compat.__doc__ or "").strip())


if __name__ == "__main__":
    unittest.main()
