from press import markers
from press.types import PromptChunk

SYSTEM_PROMPT = (
    "Act as an expert software developer. Take requests for changes to the supplied code.\n"
    "It is crucial you generate the highest quality code possible.\n"
    "Ensure that the code is well-formatted, efficient, and adheres to best practices.\n"
    "\n"
    "Important restrictions:\n"
    "- Do not wrap code in ``` fences or any other markdown formatting.\n"
    "- Avoid adding or removing comments unless the code is particularly confusing.\n"
    "- Keep the syntax and structure of the code correct and functional.\n"
    "- Only make the changes the user's prompt asks for.\n"
)

OUTPUT_FORMAT = (
    "Respond only with complete files, each in this exact format:\n"
    f"{markers.OPEN_PREFIX}path/to/file.ext\n"
    "<entire new file content>\n"
    f"{markers.CLOSE_LINE}\n"
    "\n"
    "- Use the same relative path as the input block to modify a file.\n"
    "- Use a new relative path to create a file. Paths must not start with '/' or contain '..'.\n"
    f"- If a content line itself starts with {markers.TOKEN} or ```, prefix it with a backslash.\n"
    "- Send each file at most once, and always the whole file, except for files the part note says are split.\n"
    "- Put any explanation that is not code outside of the file blocks, kept short.\n"
)


def build_system_prompt(user_system_prompt: str) -> str:
    return (
        f"<system_prompt>{SYSTEM_PROMPT}</system_prompt> "
        f"<user_system_prompt>{user_system_prompt}</user_system_prompt>"
    )


def wrap_console_output(captured: str) -> str:
    return f"<previous_console_output>\n{captured}\n</previous_console_output>"


def describe_parts(chunk: PromptChunk) -> str:
    notes = []
    for p in chunk.parts:
        notes.append(
            f"File {p.path} is too long for one part: this part holds only its lines "
            f"{p.first_line}-{p.last_line}, which are piece {p.number} of {p.count}. "
            f"To change them, send back just those lines between "
            f"{markers.part_marker(p.path, p.number, p.count)} and {markers.CLOSE_LINE}; "
            f"leave the piece out to keep it as it is. Never send {p.path} as a whole file."
        )
    return " ".join(notes)


def build_user_prompt(chunk: PromptChunk, user_prompt: str, *, console_output: str | None = None) -> str:
    prompt = user_prompt
    if console_output:
        prompt += "\n" + wrap_console_output(console_output)

    part_note = ""
    if chunk.total_chunks > 1:
        part_note = f"<part>This is part {chunk.index} of {chunk.total_chunks} of the input. "
        if chunk.parts:
            part_note += describe_parts(chunk)
        part_note += "</part> "

    return (
        f"{part_note}"
        f"<code_files>\n{chunk.content}</code_files> "
        f"<user_prompt>{prompt}</user_prompt> "
        f"<important>{OUTPUT_FORMAT}</important>"
    )
