from .descriptors import CommentDescriptor, FieldDescriptor, FormDescriptor
from .detect import detect_comment_sections, detect_forms, parse_html
from .prioritize import FormCandidate, prioritize, score_form
from .signatures import CommentSystemType, DetectionMethod, FormIntent, FormPluginType

__all__ = [
    "CommentDescriptor",
    "CommentSystemType",
    "DetectionMethod",
    "FieldDescriptor",
    "FormCandidate",
    "FormDescriptor",
    "FormIntent",
    "FormPluginType",
    "detect_comment_sections",
    "detect_forms",
    "parse_html",
    "prioritize",
    "score_form",
]
