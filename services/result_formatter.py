"""Message builders for detection chat replies."""

from typing import Optional

from models.detection_result import DetectionResult

NO_IMAGE_MESSAGE = "Please provide an image for object detection."
UNKNOWN_ERROR_TEXT = "Unknown error"


def build_prompt_message() -> str:
    """Return the reply sent when the request carries no image."""
    return NO_IMAGE_MESSAGE


def build_success_message(result: DetectionResult) -> str:
    """Return the Markdown report for a successful detection."""
    labels = result.labels_text
    return (
        "🔍 **Object Detection Results**\n"
        "\n"
        f"**Detection Count:** {result.detection_count}\n"
        f"**Detected Objects:** {labels}\n"
        f"**Prediction ID:** {result.prediction_uid}\n"
        "\n"
        f"I've analyzed your image and detected {result.detection_count} object(s). "
        f"The detected objects include: {labels}."
    )


def build_error_message(error: Optional[BaseException], service_address: Optional[str]) -> str:
    """Return the error report, pointing the user at the detection service address."""
    detail = str(error).strip() if error is not None else ""
    return (
        "❌ **Object Detection Error**\n"
        "\n"
        f"Sorry, I encountered an error while processing your image: {detail or UNKNOWN_ERROR_TEXT}\n"
        "\n"
        f"Please make sure the object detection service is reachable at http://{service_address}."
    )
