"""
CLI命令行入口

使用Typer框架提供命令行接口
"""
import asyncio
import json
from datetime import datetime
from typing import List, Optional

import typer
import yaml
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape

from . import __version__
from .engine import DiagnosticOrchestrator, InvalidInput, ReportGenerator
from .integrations import EngineSettings, InventoryError, load_inventory
from .models.host import HostDescriptor
from .utils.output_formatter import ResultFormatter

# 加载环境变量
load_dotenv()

app = typer.Typer(
    name="mtrfleet",
    help="多主机MTR网络路径诊断",
    add_completion=False
)
console = Console()

OUTPUT_FORMATS = ("table", "json", "csv")


def _load_hosts(inventory: Optional[str], host_ids: Optional[List[int]]) -> List[HostDescriptor]:
    """加载主机清单并按ID过滤，失败时退出"""
    try:
        hosts = load_inventory(inventory)
    except (FileNotFoundError, yaml.YAMLError, InventoryError) as e:
        console.print(f"[red]加载主机清单失败: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    if host_ids:
        known = {host.id for host in hosts}
        unknown = [i for i in host_ids if i not in known]
        if unknown:
            console.print(f"[red]主机清单中不存在的ID: {', '.join(map(str, unknown))}[/red]")
            raise typer.Exit(code=1)
        hosts = [host for host in hosts if host.id in set(host_ids)]

    return hosts


@app.command("run")
def run(
    target: str = typer.Argument(..., help="探测目标，例如: 8.8.8.8 或 example.com"),
    inventory: Optional[str] = typer.Option(None, "--inventory", "-i", help="主机清单YAML文件，默认 config/hosts.yaml"),
    count: int = typer.Option(10, "--count", "-c", help="每跳探测次数 (1-100)"),
    host_ids: Optional[List[int]] = typer.Option(None, "--host-id", help="只在指定ID的主机上执行，可重复"),
    output_format: str = typer.Option("table", "--format", "-f", help="输出格式: table | json | csv"),
    output_dir: Optional[str] = typer.Option(None, "--output", "-o", help="导出目录（json/csv格式）"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="显示标准差等详细信息")
):
    """
    在多台主机上并发执行mtr

    示例:
        mtrfleet run 8.8.8.8 -i config/hosts.yaml
        mtrfleet run example.com --host-id 1 --host-id 3 -c 20 --format csv -o runtime/reports
    """
    if output_format not in OUTPUT_FORMATS:
        console.print(f"[red]不支持的输出格式: {escape(output_format)}[/red]")
        raise typer.Exit(code=1)

    hosts = _load_hosts(inventory, host_ids)
    settings = EngineSettings.from_env()
    orchestrator = DiagnosticOrchestrator.from_settings(settings)

    console.print(f"\n[bold cyan]mtrfleet - {target}[/bold cyan]")
    console.print(f"[dim]{'='*60}[/dim]\n")

    try:
        aggregate = asyncio.run(orchestrator.execute(hosts, target, count))
    except InvalidInput as e:
        console.print(f"[red]参数错误: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    reporter = ReportGenerator(output_dir or "runtime/reports")
    name = f"trace_{datetime.now().strftime('%Y%m%d%H%M%S')}"

    if output_format == "json":
        console.print_json(json.dumps(reporter.build_document(aggregate, hosts), ensure_ascii=False))
        if output_dir:
            path = reporter.export_json(aggregate, hosts, name=name)
            console.print(f"\n[green]OK[/green] 结果已导出: [bold]{path}[/bold]")
    elif output_format == "csv":
        for path in reporter.export_csv(aggregate, name=name):
            console.print(f"[green]OK[/green] 结果已导出: [bold]{path}[/bold]")
    else:
        ResultFormatter(console, verbose=verbose).print_aggregate(aggregate, hosts)

    console.print(reporter.generate_summary(aggregate, hosts), markup=False)


@app.command("probe")
def probe(
    inventory: Optional[str] = typer.Option(None, "--inventory", "-i", help="主机清单YAML文件，默认 config/hosts.yaml"),
    host_ids: Optional[List[int]] = typer.Option(None, "--host-id", help="只测试指定ID的主机，可重复"),
    timeout: Optional[float] = typer.Option(None, "--timeout", "-t", help="连接超时（秒），默认10秒")
):
    """
    测试主机的SSH连通性

    示例:
        mtrfleet probe -i config/hosts.yaml
    """
    hosts = _load_hosts(inventory, host_ids)
    orchestrator = DiagnosticOrchestrator.from_settings(EngineSettings.from_env())

    results = asyncio.run(orchestrator.probe_all(hosts, timeout))
    ResultFormatter(console).print_probe_results(results, hosts)

    if not all(result.reachable for result in results.values()):
        raise typer.Exit(code=2)


@app.command("version")
def version():
    """显示版本信息"""
    console.print(f"[bold cyan]mtrfleet[/bold cyan] v{__version__}")
    console.print("多主机MTR网络路径诊断")


def main():
    """主入口函数"""
    app()


if __name__ == "__main__":
    main()
