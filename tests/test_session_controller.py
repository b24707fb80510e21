from __future__ import annotations

import base64
import threading
from typing import Callable, Optional

import encoder
from errors import ENCODING_ERROR, NETWORK_ERROR, PERMISSION_DENIED, PermissionDenied, ServiceError
from history import HistoryStore
from models import AudioBlob, PlaybackBuffer, SessionState, TranslationResult
from session_controller import SessionController


class FakeRecorder:
    def __init__(self, blob: Optional[AudioBlob] = None, start_error: Exception | None = None) -> None:
        self.blob = blob if blob is not None else AudioBlob(b"RIFF-fake-wav-bytes", "audio/wav")
        self.start_error = start_error
        self.started = 0
        self.stopped = 0
        self.closed = 0
        self.on_start: Optional[Callable[[], None]] = None

    @property
    def elapsed_s(self) -> float:
        return 0.0

    def start(self) -> None:
        if self.on_start:
            self.on_start()
        if self.start_error is not None:
            raise self.start_error
        self.started += 1

    def stop(self) -> Optional[AudioBlob]:
        self.stopped += 1
        return self.blob

    def close(self) -> None:
        self.closed += 1


class FakeClient:
    def __init__(
        self,
        result: TranslationResult | None = None,
        error: Exception | None = None,
        speech: str = "",
        speech_error: Exception | None = None,
    ) -> None:
        self.result = result or TranslationResult(original="કેમ છો", translated="How are you?")
        self.error = error
        self.speech = speech
        self.speech_error = speech_error
        self.text_calls: list[str] = []
        self.audio_calls: list[tuple[str, str]] = []
        self.speech_calls: list[str] = []
        self.on_call: Optional[Callable[[], None]] = None

    def translate_text(self, text: str) -> TranslationResult:
        self.text_calls.append(text)
        if self.on_call:
            self.on_call()
        if self.error:
            raise self.error
        return self.result

    def translate_audio(self, base64_payload: str, mime_type: str) -> TranslationResult:
        self.audio_calls.append((base64_payload, mime_type))
        if self.error:
            raise self.error
        return self.result

    def synthesize_speech(self, text: str) -> str:
        self.speech_calls.append(text)
        if self.speech_error:
            raise self.speech_error
        return self.speech


class FakeOutput:
    def __init__(self, finish_immediately: bool = False, error: Exception | None = None) -> None:
        self.error = error
        self.buffers: list[PlaybackBuffer] = []
        self.on_ended: Optional[Callable[[], None]] = None
        self.finish_immediately = finish_immediately

    def play(self, buffer: PlaybackBuffer, on_ended: Callable[[], None]) -> None:
        if self.error:
            raise self.error
        self.buffers.append(buffer)
        self.on_ended = on_ended
        if self.finish_immediately:
            on_ended()


class MemoryStorage:
    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove_item(self, key: str) -> None:
        self.data.pop(key, None)


class ReadOnlyStorage(MemoryStorage):
    def set_item(self, key: str, value: str) -> None:
        raise PermissionError("read-only storage")

    def remove_item(self, key: str) -> None:
        raise PermissionError("read-only storage")


def _controller(
    recorder: FakeRecorder | None = None,
    client: FakeClient | None = None,
    output: FakeOutput | None = None,
    storage: MemoryStorage | None = None,
    **callbacks,
) -> SessionController:
    return SessionController(
        recorder=recorder or FakeRecorder(),
        client=client or FakeClient(),
        history=HistoryStore(storage or MemoryStorage()),
        audio_output=output or FakeOutput(),
        **callbacks,
    )


def test_submit_text_happy_path_records_history() -> None:
    client = FakeClient(
        result=TranslationResult(original="કેમ છો", translated="How are you?", pronunciation="kem cho")
    )
    transitions: list[tuple[SessionState, SessionState]] = []
    results: list[TranslationResult | None] = []
    controller = _controller(
        client=client,
        on_state_change=lambda f, t: transitions.append((f, t)),
        on_result=results.append,
    )

    assert controller.submit_text("કેમ છો") is True

    assert client.text_calls == ["કેમ છો"]
    assert controller.state == SessionState.READY
    assert controller.result is not None
    assert controller.result.translated == "How are you?"
    assert controller.result.pronunciation == "kem cho"
    assert len(controller.history) == 1
    assert controller.history[0].original == "કેમ છો"
    assert transitions == [
        (SessionState.IDLE, SessionState.PROCESSING),
        (SessionState.PROCESSING, SessionState.READY),
    ]
    assert results[-1] is controller.result


def test_submit_blank_text_is_rejected() -> None:
    client = FakeClient()
    controller = _controller(client=client)

    assert controller.submit_text("   ") is False
    assert client.text_calls == []
    assert controller.state == SessionState.IDLE


def test_submit_text_while_processing_is_rejected() -> None:
    client = FakeClient()
    controller = _controller(client=client)
    nested: list[bool] = []
    client.on_call = lambda: nested.append(controller.submit_text("second"))

    controller.submit_text("first")

    assert nested == [False]
    assert client.text_calls == ["first"]
    assert len(controller.history) == 1


def test_submit_text_while_recording_is_rejected() -> None:
    client = FakeClient()
    controller = _controller(client=client)
    controller.start_capture()

    assert controller.submit_text("hello") is False
    assert controller.state == SessionState.RECORDING
    assert client.text_calls == []


def test_service_error_returns_to_idle_without_history() -> None:
    client = FakeClient(error=ServiceError("connection reset", code=NETWORK_ERROR))
    errors: list[tuple[str, str]] = []
    controller = _controller(client=client, on_error=lambda c, m: errors.append((c, m)))

    controller.submit_text("કેમ છો")

    assert controller.state == SessionState.IDLE
    assert controller.result is None
    assert controller.history == []
    assert errors == [(NETWORK_ERROR, "connection reset")]


def test_new_request_clears_previous_result() -> None:
    client = FakeClient()
    results: list[TranslationResult | None] = []
    controller = _controller(client=client, on_result=results.append)
    controller.submit_text("one")

    client.error = ServiceError("boom")
    controller.submit_text("two")

    assert results[0] is not None
    assert results[1] is None
    assert controller.result is None
    assert len(controller.history) == 1


def test_start_capture_twice_is_noop() -> None:
    recorder = FakeRecorder()
    transitions: list[tuple[SessionState, SessionState]] = []
    controller = _controller(recorder=recorder, on_state_change=lambda f, t: transitions.append((f, t)))

    assert controller.start_capture() is True
    assert controller.start_capture() is False

    assert recorder.started == 1
    assert controller.state == SessionState.RECORDING
    assert transitions == [(SessionState.IDLE, SessionState.RECORDING)]


def test_record_stop_translates_encoded_audio_and_fills_input() -> None:
    blob = AudioBlob(b"RIFF\x00\x01\x02\x03WAVE", "audio/wav")
    recorder = FakeRecorder(blob=blob)
    client = FakeClient(result=TranslationResult(original="આભાર", translated="Thank you"))
    inputs: list[str] = []
    controller = _controller(recorder=recorder, client=client, on_input_text=inputs.append)

    controller.start_capture()
    result = controller.stop_capture()

    expected = encoder.encode(blob)
    assert client.audio_calls == [expected]
    assert expected[1] == "audio/wav"
    assert result is not None
    assert controller.state == SessionState.READY
    assert controller.input_text == "આભાર"
    assert inputs == ["આભાર"]
    assert len(controller.history) == 1
    assert recorder.closed >= 1


def test_stop_capture_when_not_recording_is_noop() -> None:
    recorder = FakeRecorder()
    controller = _controller(recorder=recorder)

    assert controller.stop_capture() is None
    assert recorder.stopped == 0
    assert controller.state == SessionState.IDLE


def test_empty_recording_is_an_encoding_error() -> None:
    recorder = FakeRecorder(blob=AudioBlob(b"", "audio/wav"))
    client = FakeClient()
    errors: list[tuple[str, str]] = []
    controller = _controller(recorder=recorder, client=client, on_error=lambda c, m: errors.append((c, m)))

    controller.start_capture()
    controller.stop_capture()

    assert client.audio_calls == []
    assert controller.state == SessionState.IDLE
    assert errors[0][0] == ENCODING_ERROR
    assert controller.history == []


def test_permission_denied_sets_persistent_capture_error() -> None:
    recorder = FakeRecorder(start_error=PermissionDenied())
    errors: list[tuple[str, str]] = []
    controller = _controller(recorder=recorder, on_error=lambda c, m: errors.append((c, m)))

    assert controller.start_capture() is False

    assert controller.state == SessionState.IDLE
    assert controller.capture_error is not None
    assert "permission denied" in controller.capture_error.lower()
    assert errors[0][0] == PERMISSION_DENIED

    recorder.start_error = None
    assert controller.start_capture() is True
    assert controller.capture_error is None


def test_speak_plays_decoded_audio_and_resets_on_end() -> None:
    pcm = (b"\x00\x40" * 4)
    client = FakeClient(speech=base64.b64encode(pcm).decode("ascii"))
    output = FakeOutput()
    flags: list[bool] = []
    controller = _controller(client=client, output=output, on_synthesizing=flags.append)
    controller.submit_text("કેમ છો")

    assert controller.request_speak() is True
    assert controller.synthesizing is True
    assert client.speech_calls == ["How are you?"]
    assert output.buffers[0].frames == 4
    assert output.buffers[0].sample_rate == 24000

    assert controller.request_speak() is False

    assert output.on_ended is not None
    output.on_ended()
    assert controller.synthesizing is False
    assert flags == [True, False]


def test_speak_with_empty_audio_skips_playback() -> None:
    client = FakeClient(result=TranslationResult(original="આભાર", translated="Thank you"), speech="")
    output = FakeOutput()
    errors: list[tuple[str, str]] = []
    controller = _controller(client=client, output=output, on_error=lambda c, m: errors.append((c, m)))
    controller.submit_text("આભાર")

    assert controller.request_speak() is False

    assert client.speech_calls == ["Thank you"]
    assert output.buffers == []
    assert controller.synthesizing is False
    assert errors == []


def test_speak_with_odd_length_audio_resets_flag() -> None:
    client = FakeClient(speech=base64.b64encode(b"\x00\x01\x02").decode("ascii"))
    output = FakeOutput()
    controller = _controller(client=client, output=output)
    controller.submit_text("કેમ છો")

    assert controller.request_speak() is False
    assert output.buffers == []
    assert controller.synthesizing is False


def test_speak_without_result_is_noop() -> None:
    client = FakeClient(speech="AAAA")
    controller = _controller(client=client)

    assert controller.request_speak() is False
    assert client.speech_calls == []


def test_clear_history_empties_store() -> None:
    history_events: list[list] = []
    controller = _controller(on_history_change=history_events.append)
    controller.submit_text("one")
    controller.submit_text("two")
    assert len(controller.history) == 2

    controller.clear_history()

    assert controller.history == []
    assert history_events[-1] == []


def test_shutdown_releases_recorder() -> None:
    recorder = FakeRecorder()
    controller = _controller(recorder=recorder)
    controller.start_capture()

    controller.shutdown()

    assert recorder.closed == 1
    assert controller.state == SessionState.IDLE


def test_speech_service_error_clears_synthesizing_flag() -> None:
    client = FakeClient(speech_error=ServiceError("network timeout", code=NETWORK_ERROR))
    output = FakeOutput()
    flags: list[bool] = []
    errors: list[tuple[str, str]] = []
    controller = _controller(
        client=client,
        output=output,
        on_synthesizing=flags.append,
        on_error=lambda c, m: errors.append((c, m)),
    )
    controller.submit_text("કેમ છો")

    assert controller.request_speak() is False

    assert controller.synthesizing is False
    assert flags == [True, False]
    assert output.buffers == []
    assert controller.state == SessionState.READY
    assert errors == []


def test_output_device_error_clears_synthesizing_flag() -> None:
    client = FakeClient(speech=base64.b64encode(b"\x00\x40" * 4).decode("ascii"))
    output = FakeOutput(error=ValueError("No output device matching 'nonexistent'"))
    flags: list[bool] = []
    controller = _controller(client=client, output=output, on_synthesizing=flags.append)
    controller.submit_text("કેમ છો")

    assert controller.request_speak() is False
    assert controller.synthesizing is False
    assert flags == [True, False]

    # Listen stays usable
    output.error = None
    assert controller.request_speak() is True


def test_history_write_failure_still_reaches_ready() -> None:
    history_events: list[list] = []
    controller = _controller(storage=ReadOnlyStorage(), on_history_change=history_events.append)

    assert controller.submit_text("કેમ છો") is True

    assert controller.state == SessionState.READY
    assert controller.result is not None
    assert [item.original for item in controller.history] == ["કેમ છો"]
    assert len(history_events[-1]) == 1

    assert controller.submit_text("આભાર") is True
    assert controller.state == SessionState.READY
    assert len(controller.history) == 2

    controller.clear_history()
    assert controller.history == []


def test_device_open_runs_outside_controller_lock() -> None:
    recorder = FakeRecorder()
    controller = _controller(recorder=recorder)
    outcome: list[bool] = []

    def submit_from_other_thread() -> None:
        worker = threading.Thread(target=lambda: outcome.append(controller.submit_text("કેમ છો")))
        worker.start()
        worker.join(timeout=2)
        outcome.append(worker.is_alive())

    recorder.on_start = submit_from_other_thread

    assert controller.start_capture() is True

    # the other thread was neither blocked nor let through
    assert outcome == [False, False]
    assert controller.state == SessionState.RECORDING


def test_start_capture_while_device_is_opening_is_rejected() -> None:
    recorder = FakeRecorder()
    controller = _controller(recorder=recorder)
    nested: list[bool] = []
    recorder.on_start = lambda: nested.append(controller.start_capture())

    assert controller.start_capture() is True

    assert nested == [False]
    assert recorder.started == 1
