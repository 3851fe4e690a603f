"""
报告生成器

把诊断结果导出为JSON/CSV文件，并生成终端摘要
"""
import csv
import io
import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..models.host import HostDescriptor
from ..models.results import AggregateResult, Failure, hops_as_list
from ..utils.parsers.base import HopRecord

CSV_HEADER = ["Hop", "Host", "Loss %", "Sent", "Last (ms)", "Avg (ms)", "Best (ms)", "Worst (ms)", "StDev"]


def hops_to_csv(hops: Iterable[HopRecord]) -> str:
    """将跳点列表转换为CSV文本"""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for hop in hops:
        writer.writerow([
            hop.hop, hop.host, hop.loss, hop.sent,
            hop.last, hop.avg, hop.best, hop.worst, hop.stdev
        ])
    return buffer.getvalue()


class ReportGenerator:
    """
    报告生成器

    支持JSON（整批结果）和CSV（每台主机一个文件）两种导出格式
    """

    def __init__(self, output_dir: str = "runtime/reports"):
        """
        初始化报告生成器

        Args:
            output_dir: 报告输出目录
        """
        self.output_dir = Path(output_dir)

    def build_document(
        self,
        aggregate: AggregateResult,
        hosts: Optional[Iterable[HostDescriptor]] = None
    ) -> Dict:
        """生成可序列化的结果文档，附带主机信息（不含凭据）"""
        document = aggregate.to_dict()
        if hosts is not None:
            host_map = {host.id: host for host in hosts}
            for host_id, entry in document["results"].items():
                host = host_map.get(int(host_id))
                entry["server"] = {
                    "id": host.id,
                    "name": host.name,
                    "location": host.location,
                } if host else None
        return document

    def export_json(
        self,
        aggregate: AggregateResult,
        hosts: Optional[Iterable[HostDescriptor]] = None,
        name: str = "trace"
    ) -> str:
        """
        导出整批结果为JSON文件

        Returns:
            生成的文件路径
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.output_dir / f"{name}.json"

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(self.build_document(aggregate, hosts), f, ensure_ascii=False, indent=2)

        return str(output_path)

    def export_csv(self, aggregate: AggregateResult, name: str = "trace") -> List[str]:
        """
        导出每台成功主机的跳点为CSV文件，失败的主机不生成文件

        Returns:
            生成的文件路径列表
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        paths = []

        for host_id, outcome in sorted(aggregate.outcomes.items()):
            if isinstance(outcome, Failure):
                continue
            output_path = self.output_dir / f"{name}-{host_id}.csv"
            with open(output_path, 'w', encoding='utf-8', newline='') as f:
                f.write(hops_to_csv(hops_as_list(outcome)))
            paths.append(str(output_path))

        return paths

    def generate_summary(
        self,
        aggregate: AggregateResult,
        hosts: Optional[Iterable[HostDescriptor]] = None
    ) -> str:
        """
        生成简要摘要（用于终端输出）

        Args:
            aggregate: 聚合结果
            hosts: 主机列表，用于显示名称

        Returns:
            摘要文本
        """
        labels = {host.id: host.label for host in hosts} if hosts is not None else {}
        stats = aggregate.summary()

        summary = f"""
{'='*60}
MTR诊断报告 - {aggregate.target} (count={aggregate.probe_count})
{'='*60}

主机总数: {stats['total_traces']}
成功: {stats['successful_traces']}
失败: {stats['failed_traces']}

"""
        for host_id, outcome in sorted(aggregate.outcomes.items()):
            label = labels.get(host_id, f"host-{host_id}")
            if isinstance(outcome, Failure):
                summary += f"[FAIL] {label}: {outcome}\n"
            elif not outcome.hops:
                summary += f"[OK] {label}: 0 跳\n"
            else:
                last_hop = outcome.hops[-1]
                summary += (f"[OK] {label}: {len(outcome.hops)} 跳, "
                           f"最后一跳 {last_hop.host} avg={last_hop.avg:.1f}ms loss={last_hop.loss:.1f}%\n")

        summary += "=" * 60
        return summary
