"""JSON exporter."""
import json
from datetime import datetime
from pathlib import Path

from apidoc_infer.analysis.results import ApiDocument


class JsonExporter:
    """Export an inferred document to JSON."""

    def __init__(self, include_diagnostics: bool = False):
        self.include_diagnostics = include_diagnostics

    def export(self, output_file: Path, document: ApiDocument) -> None:
        """Export to JSON file."""
        output_file.parent.mkdir(parents=True, exist_ok=True)

        data = document.to_dict()
        if self.include_diagnostics:
            data["x-diagnostics"] = {
                "generated_at": datetime.now().isoformat(),
                "messages": list(document.diagnostics),
            }

        with open(output_file, "w") as f:
            json.dump(data, f, indent=2, default=str)
