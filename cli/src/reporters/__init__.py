from cli.src.reporters.pretty import PrettyReporter
from cli.src.reporters.json_output import format_pipeline_result_as_json

__all__ = ["PrettyReporter", "format_pipeline_result_as_json"]
