"""
DDL formatting for display
"""
import sqlparse


class DdlFormatter:
    @staticmethod
    def format_ddl(sql: str) -> str:
        """Reindent a CREATE statement and upper-case its keywords"""
        if not sql or not sql.strip():
            return ""
        return sqlparse.format(
            sql,
            reindent=True,
            keyword_case='upper',
            indent_width=4,
        ).strip()
