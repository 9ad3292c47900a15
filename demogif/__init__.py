"""
demogif: record a natural-language goal as a cursor-annotated GIF.

The pipeline plans browser actions with an LLM, executes them on a live
Playwright page while sampling frames, re-plans at checkpoint actions,
then burns in the cursor overlay and encodes the GIF.
"""
