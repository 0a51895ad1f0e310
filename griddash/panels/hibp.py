"""Breach lookup panel renderer."""

from __future__ import annotations

from rich.table import Table
from rich.text import Text

from griddash.config import RowColors
from griddash.formatting import safe_text
from griddash.models import Status


def render(status: Status, accounts: list[str], focused: bool, row_colors: RowColors) -> Table:
    table = Table(box=None, expand=True, show_header=focused, pad_edge=False)
    table.add_column("Account", overflow="fold")
    table.add_column("Breach", overflow="fold")
    if focused:
        table.add_column("Date", no_wrap=True)

    by_account: dict[str, list] = {account: [] for account in accounts if account}
    for record in status.records:
        by_account.setdefault(record.group, []).append(record)

    if not by_account:
        table.add_row(Text("no accounts configured", style="dim"), "")
        return table

    idx = 0
    for account, records in by_account.items():
        if not records:
            row = [Text(safe_text(account), style="green"), Text("no breaches", style="green")]
            if focused:
                row.append("-")
            table.add_row(*row)
            idx += 1
            continue

        for position, record in enumerate(records):
            style = row_colors.for_row(idx)
            name = Text(safe_text(account), style="red") if position == 0 else Text("")
            row = [name, Text(safe_text(record.title), style=style)]
            if focused:
                row.append(Text(safe_text(record.timestamp or "?"), style=style))
            table.add_row(*row)
            idx += 1

    return table
