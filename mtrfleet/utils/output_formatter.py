"""
终端输出格式化器

用rich表格展示每台主机的mtr结果和连通性测试结果
"""
from typing import Dict, Iterable, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..models.host import HostDescriptor
from ..models.results import AggregateResult, Failure, ProbeResult


class ResultFormatter:
    """结果格式化器"""

    def __init__(self, console: Optional[Console] = None, verbose: bool = False):
        """
        初始化格式化器

        Args:
            console: rich控制台，默认新建
            verbose: 是否显示标准差等详细列
        """
        self.console = console or Console(emoji=False, legacy_windows=False)
        self.verbose = verbose

    def print_aggregate(self, aggregate: AggregateResult, hosts: Iterable[HostDescriptor]):
        """按输入顺序打印每台主机的结果"""
        for host in hosts:
            outcome = aggregate.outcomes.get(host.id)
            title = f"{host.label} ({host.location})" if host.location else host.label

            if outcome is None:
                continue
            if isinstance(outcome, Failure):
                self.console.print(f"\n[bold]{escape(title)}[/bold]")
                self.console.print(f"[red]失败 ({outcome.kind.value}): {escape(outcome.message)}[/red]")
                continue

            table = Table(title=escape(title), title_justify="left")
            table.add_column("Hop", justify="right")
            table.add_column("Host")
            table.add_column("Loss %", justify="right")
            table.add_column("Sent", justify="right")
            table.add_column("Last", justify="right")
            table.add_column("Avg", justify="right")
            table.add_column("Best", justify="right")
            table.add_column("Worst", justify="right")
            if self.verbose:
                table.add_column("StDev", justify="right")

            for hop in outcome.hops:
                loss_style = "red" if hop.loss >= 50 else "yellow" if hop.loss > 0 else "green"
                row = [
                    str(hop.hop),
                    escape(hop.host),
                    f"[{loss_style}]{hop.loss:.1f}[/{loss_style}]",
                    str(hop.sent),
                    f"{hop.last:.1f}",
                    f"{hop.avg:.1f}",
                    f"{hop.best:.1f}",
                    f"{hop.worst:.1f}",
                ]
                if self.verbose:
                    row.append(f"{hop.stdev:.1f}")
                table.add_row(*row)

            self.console.print()
            self.console.print(table)

    def print_probe_results(self, results: Dict[int, ProbeResult], hosts: Iterable[HostDescriptor]):
        """打印连通性测试结果"""
        table = Table(title="SSH连通性测试", title_justify="left")
        table.add_column("ID", justify="right")
        table.add_column("主机")
        table.add_column("地址")
        table.add_column("状态")
        table.add_column("信息")

        for host in hosts:
            result = results.get(host.id)
            if result is None:
                continue
            status = "[green]OK[/green]" if result.reachable else "[red]FAIL[/red]"
            table.add_row(str(host.id), escape(host.label), f"{host.host}:{host.port}", status, escape(result.message))

        self.console.print(table)
