"""Typed argument models for every tool.

Each tool's untyped argument bag is validated into a frozen pydantic
model before any client is resolved. Field names are snake_case with the
camelCase aliases used by the tool input schemas, so both spellings are
accepted. Keys a model does not know are ignored.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from google_mcp.errors import UnknownToolError, ValidationError

NonEmptyStr = Annotated[str, Field(min_length=1)]
PositiveInt = Annotated[int, Field(gt=0)]

EmailFormat = Literal["full", "metadata", "minimal", "raw"]
ShareRole = Literal["reader", "writer", "commenter", "owner"]
TaskStatus = Literal["needsAction", "completed"]


class ToolArguments(BaseModel):
    """Base for all tool argument models."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class NoArguments(ToolArguments):
    pass


# Calendar


class SetDefaultCalendarArgs(ToolArguments):
    calendar_id: NonEmptyStr


class CreateEventArgs(ToolArguments):
    summary: NonEmptyStr
    start: NonEmptyStr
    end: NonEmptyStr
    description: str | None = None
    location: str | None = None
    color_id: str | None = None
    attendees: list[str] | None = None
    recurrence: str | None = None
    calendar_id: str | None = None


class GetEventsArgs(ToolArguments):
    limit: PositiveInt = 10
    calendar_id: str | None = None
    time_min: str | None = None
    time_max: str | None = None
    q: str | None = None
    show_deleted: bool | None = None


class EventArgs(ToolArguments):
    event_id: NonEmptyStr
    calendar_id: str | None = None


class UpdateEventArgs(EventArgs):
    summary: str | None = None
    description: str | None = None
    start: str | None = None
    end: str | None = None
    location: str | None = None
    color_id: str | None = None
    attendees: list[str] | None = None
    recurrence: str | None = None

    def changes(self) -> dict[str, Any]:
        """Fields to patch, without the addressing fields."""
        return self.model_dump(exclude={"event_id", "calendar_id"}, exclude_none=True)


class FindFreeTimeArgs(ToolArguments):
    start_date: NonEmptyStr
    end_date: NonEmptyStr
    duration: PositiveInt
    calendar_ids: list[str] | None = None


# Gmail


class ListEmailsArgs(ToolArguments):
    label_ids: list[str] | None = None
    max_results: PositiveInt = 10
    query: str | None = None


class GetEmailArgs(ToolArguments):
    message_id: NonEmptyStr
    format: EmailFormat = "full"


class GetEmailByIndexArgs(ToolArguments):
    index: PositiveInt
    format: EmailFormat = "full"


class ComposeEmailArgs(ToolArguments):
    to: Annotated[list[NonEmptyStr], Field(min_length=1)]
    subject: NonEmptyStr
    body: str
    cc: list[str] | None = None
    bcc: list[str] | None = None
    is_html: bool = False


class DeleteEmailArgs(ToolArguments):
    message_id: NonEmptyStr
    permanently: bool = False


class ModifyLabelsArgs(ToolArguments):
    message_id: NonEmptyStr
    add_label_ids: list[str] | None = None
    remove_label_ids: list[str] | None = None


# Drive


class ListFilesArgs(ToolArguments):
    query: str | None = None
    page_size: PositiveInt = 10
    order_by: str | None = None
    fields: str | None = None


class FileArgs(ToolArguments):
    file_id: NonEmptyStr


class CreateFileArgs(ToolArguments):
    name: NonEmptyStr
    content: str
    mime_type: str | None = None
    folder_id: str | None = None


class AppendToFileArgs(ToolArguments):
    file_id: NonEmptyStr
    content: str
    mime_type: str | None = None


class DeleteFileArgs(FileArgs):
    permanently: bool = False


class ShareFileArgs(ToolArguments):
    file_id: NonEmptyStr
    email_address: NonEmptyStr
    role: ShareRole = "reader"
    send_notification: bool = True
    message: str | None = None


# Tasks


class TaskListArgs(ToolArguments):
    task_list_id: NonEmptyStr


class ListTasksArgs(ToolArguments):
    task_list_id: str | None = None
    show_completed: bool = True


class TaskArgs(ToolArguments):
    task_id: NonEmptyStr
    task_list_id: str | None = None


class CreateTaskArgs(ToolArguments):
    title: NonEmptyStr
    notes: str | None = None
    due: str | None = None
    task_list_id: str | None = None


class UpdateTaskArgs(TaskArgs):
    title: str | None = None
    notes: str | None = None
    due: str | None = None
    status: TaskStatus | None = None

    def changes(self) -> dict[str, Any]:
        """Fields to patch, without the addressing fields."""
        return self.model_dump(exclude={"task_id", "task_list_id"}, exclude_none=True)


class CreateTaskListArgs(ToolArguments):
    title: NonEmptyStr


# Meet


class ListMeetingsArgs(ToolArguments):
    filter: str | None = None
    page_size: Annotated[int, Field(gt=0, le=100)] = 25
    page_token: str | None = None
    include_availability: bool = False


class ConferenceRecordArgs(ToolArguments):
    conference_record_id: NonEmptyStr


class GetTranscriptArgs(ConferenceRecordArgs):
    include_timestamps: bool = True
    include_participant: bool = True


class SearchTranscriptsArgs(ToolArguments):
    query: NonEmptyStr
    time_min: str | None = None
    time_max: str | None = None
    max_meetings: Annotated[int, Field(gt=0, le=100)] = 20


ARGUMENT_MODELS: dict[str, type[ToolArguments]] = {
    "google_calendar_set_default": SetDefaultCalendarArgs,
    "google_calendar_list_calendars": NoArguments,
    "google_calendar_create_event": CreateEventArgs,
    "google_calendar_get_events": GetEventsArgs,
    "google_calendar_get_event": EventArgs,
    "google_calendar_update_event": UpdateEventArgs,
    "google_calendar_delete_event": EventArgs,
    "google_calendar_find_free_time": FindFreeTimeArgs,
    "google_gmail_list_labels": NoArguments,
    "google_gmail_list_emails": ListEmailsArgs,
    "google_gmail_get_email": GetEmailArgs,
    "google_gmail_get_email_by_index": GetEmailByIndexArgs,
    "google_gmail_send_email": ComposeEmailArgs,
    "google_gmail_draft_email": ComposeEmailArgs,
    "google_gmail_delete_email": DeleteEmailArgs,
    "google_gmail_modify_labels": ModifyLabelsArgs,
    "google_drive_list_files": ListFilesArgs,
    "google_drive_get_file_content": FileArgs,
    "google_drive_create_file": CreateFileArgs,
    "google_drive_append_to_file": AppendToFileArgs,
    "google_drive_delete_file": DeleteFileArgs,
    "google_drive_share_file": ShareFileArgs,
    "google_tasks_set_default_list": TaskListArgs,
    "google_tasks_list_tasklists": NoArguments,
    "google_tasks_list_tasks": ListTasksArgs,
    "google_tasks_get_task": TaskArgs,
    "google_tasks_create_task": CreateTaskArgs,
    "google_tasks_update_task": UpdateTaskArgs,
    "google_tasks_complete_task": TaskArgs,
    "google_tasks_delete_task": TaskArgs,
    "google_tasks_create_tasklist": CreateTaskListArgs,
    "google_tasks_delete_tasklist": TaskListArgs,
    "google_meet_list_meetings": ListMeetingsArgs,
    "google_meet_get_meeting_info": ConferenceRecordArgs,
    "google_meet_get_transcript": GetTranscriptArgs,
    "google_meet_search_transcripts": SearchTranscriptsArgs,
}


def _describe_error(error: Any) -> str:
    location = ".".join(str(part) for part in error.get("loc", ())) or "arguments"
    return f"{location}: {error.get('msg', 'invalid value')}"


def validate_arguments(tool_name: str, arguments: Any) -> ToolArguments:
    """Validate a tool's argument bag.

    Args:
        tool_name: Catalog name of the tool.
        arguments: Untyped arguments; None is read as no arguments.

    Returns:
        The tool's typed argument model.

    Raises:
        UnknownToolError: If the tool has no argument model.
        ValidationError: With one ``"<field>: <problem>"`` entry per violation.
    """
    model = ARGUMENT_MODELS.get(tool_name)
    if model is None:
        raise UnknownToolError(tool_name)

    try:
        return model.model_validate({} if arguments is None else arguments)
    except PydanticValidationError as e:
        raise ValidationError(tool_name, [_describe_error(err) for err in e.errors()]) from e
