from engine.src.models.run import PipelineRunResult

def format_pipeline_result_as_json(result: PipelineRunResult, indent: int = 2) -> str:
    """Serialize a run result with camelCase keys."""
    return result.model_dump_json(by_alias=True, indent=indent)
