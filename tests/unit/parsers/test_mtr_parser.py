"""
MTR解析器单元测试
"""
import json

import pytest

from mtrfleet.utils.parsers import (
    UNKNOWN_HOST,
    HopRecord,
    ParseError,
    parse_json_report,
    parse_mtr_output,
    parse_text_report,
)
from tests.helpers import make_mtr_json

TEXT_REPORT = """Start: 2024-05-01T10:00:00+0000
HOST: probe-01              Loss%   Snt   Last   Avg  Best  Wrst StDev
Host                        Loss%   Snt   Last   Avg  Best  Wrst StDev
  1. 10.0.1.1                0.0%    10    0.5   0.6   0.4   0.9   0.1
  2. core-1.isp.net         10.0%    10    5.2   5.8   4.9   8.1   1.0
  3. ???                   100.0%    10    0.0   0.0   0.0   0.0   0.0
"""


class TestParseJsonReport:
    """mtr --json输出解析测试"""

    def test_full_hubs(self):
        """测试字段完整的hub"""
        output = json.dumps({"report": {"hubs": [
            {"host": "10.0.0.1", "Loss": 0.0, "Snt": 10, "Last": 1.2,
             "Avg": 1.5, "Best": 1.1, "Wrst": 2.0, "StDev": 0.3},
            {"host": "8.8.8.8", "Loss": 20.0, "Snt": 10, "Last": 9.8,
             "Avg": 10.1, "Best": 9.5, "Wrst": 12.4, "StDev": 0.9},
        ]}})

        hops = parse_json_report(output)

        assert len(hops) == 2
        assert hops[0] == HopRecord(hop=1, host="10.0.0.1", loss=0.0, sent=10, last=1.2,
                                    avg=1.5, best=1.1, worst=2.0, stdev=0.3)
        assert hops[1].hop == 2
        assert hops[1].loss == 20.0
        assert hops[1].worst == 12.4

    def test_hop_number_uses_position(self):
        """测试跳数取hub的位置而不是count字段"""
        output = json.dumps({"report": {"hubs": [
            {"count": 7, "host": "a"}, {"count": 9, "host": "b"}
        ]}})

        hops = parse_json_report(output)

        assert [h.hop for h in hops] == [1, 2]

    def test_missing_host_uses_placeholder(self):
        """测试host缺失或为空时使用???"""
        output = json.dumps({"report": {"hubs": [{"Snt": 10}, {"host": "", "Snt": 10}]}})

        hops = parse_json_report(output)

        assert hops[0].host == UNKNOWN_HOST
        assert hops[1].host == UNKNOWN_HOST

    def test_missing_numeric_fields_default_to_zero(self):
        """测试缺失或无法解析的数值字段按0处理"""
        output = json.dumps({"report": {"hubs": [{"host": "x", "Avg": "n/a", "Snt": None}]}})

        hop = parse_json_report(output)[0]

        assert hop.loss == 0.0
        assert hop.sent == 0
        assert hop.avg == 0.0
        assert hop.stdev == 0.0

    @pytest.mark.parametrize("value", [
        "NaN",
        "Infinity",
        "-Infinity",
        "1e400",
        "\"1e999\"",
        "-5",
        "\"-3.5\"",
    ])
    def test_non_finite_and_negative_values_default_to_zero(self, value):
        """测试NaN、无穷大和负数按0处理"""
        output = (
            '{"report": {"hubs": [{"host": "x", "Snt": ' + value
            + ', "Loss%": ' + value + ', "Avg": ' + value + '}]}}'
        )

        hop = parse_json_report(output)[0]

        assert hop.sent == 0
        assert hop.loss == 0.0
        assert hop.avg == 0.0

    def test_loss_percent_key_and_string_values(self):
        """测试新版mtr的Loss%键名和字符串数值"""
        output = json.dumps({"report": {"hubs": [
            {"host": "x", "Loss%": "12.5%", "Snt": "10", "Last": "3.25"}
        ]}})

        hop = parse_json_report(output)[0]

        assert hop.loss == 12.5
        assert hop.sent == 10
        assert hop.last == 3.25

    @pytest.mark.parametrize("output", [
        "not json",
        "[]",
        '{"mtr": {}}',
        '{"report": {}}',
        '{"report": {"hubs": {}}}',
        '{"report": {"hubs": []}}',
        '{"report": {"hubs": ["10.0.0.1"]}}',
    ])
    def test_malformed_structure(self, output):
        """测试结构缺失或不正确时抛出ParseError"""
        with pytest.raises(ParseError):
            parse_json_report(output)


class TestParseTextReport:
    """旧版文本报告解析测试"""

    def test_single_hop(self):
        """测试最简单的表头加一行数据"""
        output = "Host  Loss%\n  1. router1.net  0.0%  10  1.2  1.5  1.1  2.0  0.3\n"

        hops = parse_text_report(output)

        assert hops == [HopRecord(hop=1, host="router1.net", loss=0.0, sent=10, last=1.2,
                                  avg=1.5, best=1.1, worst=2.0, stdev=0.3)]

    def test_report_with_preamble(self):
        """测试表头之前的内容被丢弃（大写的HOST行不算表头）"""
        hops = parse_text_report(TEXT_REPORT)

        assert len(hops) == 3
        assert hops[1].host == "core-1.isp.net"
        assert hops[1].loss == 10.0
        assert hops[2].host == "???"
        assert hops[2].loss == 100.0

    def test_data_lines_before_header_are_ignored(self):
        """测试表头之前看起来像数据的行也会被丢弃"""
        output = (
            "  1. early.net  0.0%  10  1.0  1.0  1.0  1.0  0.0\n"
            "Host  Loss%  Snt  Last  Avg  Best  Wrst  StDev\n"
            "  1. late.net  0.0%  10  2.0  2.0  2.0  2.0  0.0\n"
        )

        hops = parse_text_report(output)

        assert [h.host for h in hops] == ["late.net"]

    def test_header_match_is_case_sensitive(self):
        """测试表头匹配区分大小写"""
        output = "HOST  LOSS%\n  1. router1.net  0.0%  10  1.2  1.5  1.1  2.0  0.3\n"

        with pytest.raises(ParseError):
            parse_text_report(output)

    def test_non_matching_lines_are_skipped(self):
        """测试不匹配的行被跳过"""
        output = (
            "Host  Loss%\n"
            "\n"
            "     continuation line\n"
            "  1. a.net  0.0%  10  1.0  1.0  1.0  1.0  0.0\n"
            "  2. b.net  bad  data\n"
            "  3. c.net  5.0%  10  3.0  3.0  3.0  3.0  0.0\n"
            "  4. d.net  0.0%  10  1.2.3  1.0  1.0  1.0  0.0\n"
            "  5. e.net  .%  10  1.0  1.0  1.0  1.0  0.0\n"
            "  6. f.net  0.0%  10  .  1.0  1.0  1.0  0.0\n"
            "  7. g.net  0.0%  10  7.0  7.0  7.0  7.0  0.0\n"
        )

        hops = parse_text_report(output)

        assert [h.hop for h in hops] == [1, 3, 7]

    def test_malformed_numbers_fall_through_to_valid_hops(self):
        """测试格式错误的数值行被跳过，其余跳点正常返回"""
        output = (
            "Host  Loss%\n"
            "  1. a.net  0.0%  10  1.2.3  1.0  1.0  1.0  0.0\n"
            "  2. b.net  0.0%  10  1.0  1.0  1.0  1.0  0.0\n"
        )

        hops = parse_mtr_output(output)

        assert [h.host for h in hops] == ["b.net"]

    def test_header_without_data(self):
        """测试只有表头没有数据"""
        with pytest.raises(ParseError, match="no hop data found"):
            parse_text_report("Host  Loss%  Snt\n")


class TestParseMtrOutput:
    """两级解析策略测试"""

    def test_structured_output_wins(self):
        """测试合法的JSON输出直接使用结构化解析结果"""
        raw = make_mtr_json(5)

        hops = parse_mtr_output(raw)

        assert hops == parse_json_report(raw.decode())
        assert len(hops) == 5
        assert hops[4].host == "10.0.5.1"

    def test_falls_back_to_text(self):
        """测试JSON解析失败后使用文本解析"""
        raw = b"Host  Loss%\n  1. router1.net  0.0%  10  1.2  1.5  1.1  2.0  0.3\n"

        hops = parse_mtr_output(raw)

        assert len(hops) == 1
        assert hops[0].host == "router1.net"
        assert hops[0].stdev == 0.3

    def test_empty_json_hubs_fall_through(self):
        """测试空的hubs列表不会返回空结果"""
        with pytest.raises(ParseError):
            parse_mtr_output(b'{"report": {"hubs": []}}')

    @pytest.mark.parametrize("raw", [b"", "", b"garbage with no header", "   \n\n"])
    def test_no_hop_data(self, raw):
        """测试空输出和无法识别的输出"""
        with pytest.raises(ParseError, match="no hop data found"):
            parse_mtr_output(raw)

    def test_invalid_utf8_does_not_crash(self):
        """测试非UTF-8字节被替换而不是抛出解码异常"""
        raw = b"\xff\xfeHost  Loss%\n  1. r\xff.net  0.0%  10  1.0  1.0  1.0  1.0  0.0\n"

        hops = parse_mtr_output(raw)

        assert len(hops) == 1

    def test_parse_is_deterministic(self):
        """测试同样的输入总是得到同样的结果"""
        for raw in (make_mtr_json(3), TEXT_REPORT.encode()):
            assert parse_mtr_output(raw) == parse_mtr_output(raw)

    def test_records_are_immutable(self):
        """测试跳点记录不可修改"""
        hop = parse_mtr_output(make_mtr_json(1))[0]

        with pytest.raises(AttributeError):
            hop.loss = 50.0
