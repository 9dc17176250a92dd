"""
SQL Validation Repository.

Static checks run on generated SQL before it reaches the database. A
rejected statement is not an exception: the ValidationStep message is fed
back to the generator exactly like a database error.

Validation Checks (in order, first failure wins):
1. Not empty
2. Single line: no newline or carriage return
3. No formatting: no markdown fences, backticks or backslashes
4. Read-only start: statement begins with SELECT or WITH
5. Forbidden keywords: no DDL/DML keywords as whole words
6. Single statement: at most one trailing semicolon

String literals and quoted identifiers are blanked before checks 5 and 6,
so a driver named 'Update' or a column called "Delete" does not trip them.

The read-only database transaction remains the backstop for anything these
checks miss.
"""

import re

from statquery.config_constants import FORBIDDEN_SQL_KEYWORDS
from statquery.domain.responses import ValidationStep
from statquery.utils.logging import get_module_logger
from statquery.utils.tracing import current_trace_id

logger = get_module_logger()

_QUOTED = re.compile(r"'(?:[^']|'')*'|\"(?:[^\"]|\"\")*\"")
_READ_ONLY_START = re.compile(r"^\s*\(*\s*(SELECT|WITH)\b", re.IGNORECASE)
_FORBIDDEN = re.compile(
    r"\b(" + "|".join(sorted(FORBIDDEN_SQL_KEYWORDS)) + r")\b",
    re.IGNORECASE,
)


def _strip_quoted(sql: str) -> str:
    return _QUOTED.sub("''", sql)


class SQLValidationRepository:
    """
    Repository for static SQL validation.

    Pure: no I/O, same answer for the same input.
    """

    def validate(self, sql: str) -> ValidationStep:
        """
        Validate a generated statement.

        Returns:
            ValidationStep with pass/fail status; on failure the message
            names the rule that was broken
        """
        for check in (
            self._check_not_empty,
            self._check_single_line,
            self._check_no_formatting,
            self._check_read_only_start,
            self._check_forbidden_keywords,
            self._check_single_statement,
        ):
            step = check(sql)
            if not step.passed:
                logger.info(
                    "Generated SQL rejected",
                    step_name=step.step_name,
                    reason=step.message,
                    trace_id=current_trace_id(),
                )
                return step

        return ValidationStep(
            step_name="sql_validation",
            passed=True,
            message="All validation checks passed",
            sql_attempted=sql,
        )

    def _check_not_empty(self, sql: str) -> ValidationStep:
        if not sql or not sql.strip():
            return ValidationStep(
                step_name="not_empty_check",
                passed=False,
                message="Generated SQL is empty",
                sql_attempted=sql,
            )
        return ValidationStep(step_name="not_empty_check", passed=True, sql_attempted=sql)

    def _check_single_line(self, sql: str) -> ValidationStep:
        if "\n" in sql.strip() or "\r" in sql.strip():
            return ValidationStep(
                step_name="single_line_check",
                passed=False,
                message="SQL must be a single line without newline characters",
                sql_attempted=sql,
            )
        return ValidationStep(step_name="single_line_check", passed=True, sql_attempted=sql)

    def _check_no_formatting(self, sql: str) -> ValidationStep:
        if "`" in sql or "\\" in sql:
            return ValidationStep(
                step_name="formatting_check",
                passed=False,
                message="SQL must not contain backticks, markdown fences or backslashes",
                sql_attempted=sql,
            )
        return ValidationStep(step_name="formatting_check", passed=True, sql_attempted=sql)

    def _check_read_only_start(self, sql: str) -> ValidationStep:
        if not _READ_ONLY_START.match(sql):
            return ValidationStep(
                step_name="read_only_check",
                passed=False,
                message="Query must be a SELECT statement (optionally starting with WITH)",
                sql_attempted=sql,
            )
        return ValidationStep(step_name="read_only_check", passed=True, sql_attempted=sql)

    def _check_forbidden_keywords(self, sql: str) -> ValidationStep:
        found = sorted({m.group(1).upper() for m in _FORBIDDEN.finditer(_strip_quoted(sql))})
        if found:
            return ValidationStep(
                step_name="forbidden_keyword_check",
                passed=False,
                message=f"SQL contains forbidden keywords: {', '.join(found)}",
                sql_attempted=sql,
            )
        return ValidationStep(step_name="forbidden_keyword_check", passed=True, sql_attempted=sql)

    def _check_single_statement(self, sql: str) -> ValidationStep:
        body = _strip_quoted(sql).strip()
        if body.endswith(";"):
            body = body[:-1]
        if ";" in body:
            return ValidationStep(
                step_name="single_statement_check",
                passed=False,
                message="SQL must contain exactly one statement",
                sql_attempted=sql,
            )
        return ValidationStep(step_name="single_statement_check", passed=True, sql_attempted=sql)
