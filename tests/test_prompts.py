from press import markers
from press.prompts import build_system_prompt, build_user_prompt
from press.types import ChunkPart, PromptChunk


def _chunk(index=1, total=1):
    return PromptChunk(index=index, content=markers.wrap("a.py", "x = 1"), total_chunks=total)


def test_system_prompt_carries_both_parts():
    sp = build_system_prompt("Be terse")
    assert sp.startswith("<system_prompt>")
    assert "<user_system_prompt>Be terse</user_system_prompt>" in sp


def test_user_prompt_embeds_code_prompt_and_format():
    up = build_user_prompt(_chunk(), "rename x")
    assert "<code_files>\n@@@ FILE a.py\nx = 1\n@@@ END\n</code_files>" in up
    assert "<user_prompt>rename x</user_prompt>" in up
    assert markers.CLOSE_LINE in up
    assert "<part>" not in up


def test_multi_part_prompt_names_its_part():
    up = build_user_prompt(_chunk(index=2, total=3), "p")
    assert "part 2 of 3" in up


def test_console_output_goes_inside_the_user_prompt():
    up = build_user_prompt(_chunk(), "fix it", console_output="error: boom")
    assert "<user_prompt>fix it\n<previous_console_output>\nerror: boom\n</previous_console_output></user_prompt>" in up


def test_split_file_piece_is_described_with_its_part_marker():
    part = ChunkPart(path="big.py", number=2, count=2, first_line=50, last_line=60, original="")
    chunk = PromptChunk(index=2, content="l49\n@@@ END\n", total_chunks=2, parts=(part,))
    up = build_user_prompt(chunk, "p")
    assert "lines 50-60" in up
    assert "@@@ PART big.py 2/2" in up
