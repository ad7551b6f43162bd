# stepwatch/runtime package
# Drives coding-agent CLIs and turns their output into canonical progress.
#
# Core components:
#   - progress: line classification, todo tracking, diff previews, result aggregation
#   - engines: AgentEngine + concrete CLI engines (claude, opencode, gemini)
#
# Usage:
#     from stepwatch.runtime.engines import get_engine
#     engine = get_engine("opencode")
#     result = engine.execute_streaming(prompt, work_dir, on_progress)
