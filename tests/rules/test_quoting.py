"""Tests for unquoted-expansion and backtick-substitution quoting rules."""

import textwrap

from safebash import analyzer
from safebash.rules import quoting


def _check_unquoted(source: str) -> list[int]:
    result = analyzer.scan(textwrap.dedent(source), [quoting.UnquotedExpansion()])
    return [diag.line for diag in result.diagnostics]


def _check_backtick(source: str) -> list[int]:
    result = analyzer.scan(textwrap.dedent(source), [quoting.BacktickSubstitution()])
    return [diag.line for diag in result.diagnostics]


# ---------------------------------------------------------------------------
# unquoted-expansion
# ---------------------------------------------------------------------------


class TestUnquotedExpansion:
    # ------------------------------------------------------------------
    # No diagnostic expected
    # ------------------------------------------------------------------

    def test_double_quoted_braced_ok(self) -> None:
        assert _check_unquoted('command "${var}"') == []

    def test_double_quoted_among_text_ok(self) -> None:
        assert _check_unquoted('echo "value: $var done"') == []

    def test_single_quoted_is_literal_ok(self) -> None:
        assert _check_unquoted("echo '$var'") == []

    def test_escaped_dollar_ok(self) -> None:
        assert _check_unquoted("echo \\$var") == []

    def test_plain_assignment_ok(self) -> None:
        assert _check_unquoted("count=$other") == []

    def test_export_assignment_ok(self) -> None:
        assert _check_unquoted("export PATH=$PATH:/opt/bin") == []

    def test_local_assignment_ok(self) -> None:
        assert _check_unquoted("local name=${1}") == []

    def test_arithmetic_command_ok(self) -> None:
        assert _check_unquoted("(( total = $a + $b ))") == []

    def test_arithmetic_expansion_ok(self) -> None:
        assert _check_unquoted('echo "$(( $a + 1 ))"') == []
        assert _check_unquoted("result=$(( $a + 1 ))") == []

    def test_double_bracket_ok(self) -> None:
        assert _check_unquoted("[[ -n $var ]]") == []

    def test_case_word_ok(self) -> None:
        assert _check_unquoted("case $1 in") == []

    def test_length_expansion_ok(self) -> None:
        assert _check_unquoted("echo ${#items[@]}") == []

    def test_special_parameters_ok(self) -> None:
        assert _check_unquoted("echo $? $#") == []

    def test_comment_ok(self) -> None:
        assert _check_unquoted("# rm $file") == []

    def test_trailing_comment_ok(self) -> None:
        assert _check_unquoted('rm -- "$file"  # never $file') == []

    def test_multiline_double_quote_ok(self) -> None:
        source = """\
            msg="first line
            $var is still quoted"
        """
        assert _check_unquoted(source) == []

    def test_quoted_inside_quoted_substitution_ok(self) -> None:
        assert _check_unquoted('echo "$(basename "$file")"') == []
        assert _check_unquoted('cd "$(dirname "$0")"') == []

    def test_ansi_c_string_ok(self) -> None:
        assert _check_unquoted("printf $'%s\\n' \"$x\"") == []

    # ------------------------------------------------------------------
    # Diagnostic expected
    # ------------------------------------------------------------------

    def test_braced_argument_flagged(self) -> None:
        source = """\
            var='threeA threeB'
            command one two ${var}
        """
        assert _check_unquoted(source) == [2]

    def test_plain_argument_flagged(self) -> None:
        assert _check_unquoted("rm $file") == [1]

    def test_positional_flagged(self) -> None:
        assert _check_unquoted("cp $1 backup/") == [1]

    def test_at_flagged(self) -> None:
        assert _check_unquoted("for arg in $@; do") == [1]

    def test_unquoted_next_to_quoted_flagged(self) -> None:
        assert _check_unquoted('echo "$a" $b') == [1]

    def test_inside_command_substitution_flagged(self) -> None:
        # The substitution is a new quoting context; its words still split.
        assert _check_unquoted("lines=$(wc -l $file)") == [1]
        assert _check_unquoted("wc -l $(basename $file)") == [1]

    def test_after_multiline_quote_closes_flagged(self) -> None:
        source = """\
            msg="first line
            second line"
            echo $msg
        """
        assert _check_unquoted(source) == [3]

    def test_unquoted_inside_quoted_substitution_flagged(self) -> None:
        # Quotes around the substitution do not protect the words inside it.
        assert _check_unquoted('echo "$(basename $file)"') == [1]

    def test_after_escaped_quote_in_ansi_c_string_flagged(self) -> None:
        source = """\
            echo $'it\\'s'
            rm $file
        """
        assert _check_unquoted(source) == [2]

    def test_one_diagnostic_per_line(self) -> None:
        assert _check_unquoted("cp $a $b $c") == [1]

    def test_column_and_message(self) -> None:
        result = analyzer.scan("cp $src dest", [quoting.UnquotedExpansion()])
        (diag,) = result.diagnostics
        assert diag.col == 3
        assert "`$src`" in diag.message
        assert diag.rule_id == "unquoted-expansion"


# ---------------------------------------------------------------------------
# backtick-substitution
# ---------------------------------------------------------------------------


class TestBacktickSubstitution:
    def test_dollar_paren_ok(self) -> None:
        assert _check_backtick("today=$(date +%F)") == []

    def test_single_quoted_ok(self) -> None:
        assert _check_backtick("echo 'literal `backticks`'") == []

    def test_escaped_ok(self) -> None:
        assert _check_backtick("echo \\`not a command\\`") == []

    def test_comment_ok(self) -> None:
        assert _check_backtick("# today=`date`") == []

    def test_assignment_flagged(self) -> None:
        assert _check_backtick("today=`date +%F`") == [1]

    def test_inside_double_quotes_flagged(self) -> None:
        assert _check_backtick('echo "today is `date`"') == [1]

    def test_column_points_at_first_backtick(self) -> None:
        result = analyzer.scan("x=`pwd`", [quoting.BacktickSubstitution()])
        assert [diag.col for diag in result.diagnostics] == [2]
