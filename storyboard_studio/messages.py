"""Generic user-facing messages used when a failure carries none."""

from typing import Union

from storyboard_studio.schemas.storyboard import OutputLanguage


MESSAGES = {
    "generic_error": {
        "vi": "Đã xảy ra lỗi. Vui lòng thử lại.",
        "en": "Something went wrong. Please try again.",
        "zh": "出现错误，请重试。",
    },
    "no_image_produced": {
        "vi": "Không có ảnh nào được tạo.",
        "en": "No image produced.",
        "zh": "未生成任何图像。",
    },
    "no_video_produced": {
        "vi": "Không có video nào được tạo.",
        "en": "No video produced.",
        "zh": "未生成任何视频。",
    },
    "inputs_missing": {
        "vi": "Thiếu dữ liệu đầu vào: cần ảnh khung đầu và prompt video.",
        "en": "Inputs missing: a start frame image and a video prompt are required.",
        "zh": "缺少输入：需要起始帧图像和视频提示。",
    },
    "import_failed": {
        "vi": "Không thể nhập tệp storyboard.",
        "en": "Could not import the storyboard file.",
        "zh": "无法导入故事板文件。",
    },
    "generation_interrupted": {
        "vi": "Quá trình tạo đã bị gián đoạn.",
        "en": "Generation was interrupted.",
        "zh": "生成已中断。",
    },
}


def message(key: str, language: Union[OutputLanguage, str] = OutputLanguage.EN) -> str:
    """Look up a message, falling back to English, then to the key."""
    lang = language.value if isinstance(language, OutputLanguage) else str(language)
    entries = MESSAGES.get(key, {})
    return entries.get(lang) or entries.get("en") or key


def error_message(error: BaseException, language: Union[OutputLanguage, str] = OutputLanguage.EN) -> str:
    """Message to show for ``error``: its own message if it has one."""
    text = getattr(error, "message", None)
    if isinstance(text, str) and text.strip():
        return text
    if not hasattr(error, "error_code"):
        text = str(error)
        if text.strip():
            return text
    return message("generic_error", language)
