"""
Standardized Result type for degheatmap
Carries a heatmap build outcome to the rendering layer
"""
from typing import Any, Dict, Optional
from dataclasses import dataclass, field

from .error_handling import DiagnosticError, format_error_markdown


@dataclass
class Result:
    """
    Outcome of a heatmap request.

    Usage:
        result = run_heatmap(records, client, dataset_id)
        if result.success:
            render(result.heatmap)
        elif result.is_empty_state:
            show_placeholder(result.error_message)
        else:
            show_error(result.data['diagnostic'])
    """
    success: bool
    data: Optional[Dict[str, Any]] = field(default_factory=dict)
    error_message: Optional[str] = None
    error_category: Optional[str] = None
    warnings: list = field(default_factory=list)
    message: Optional[str] = None

    @classmethod
    def ok(cls, data: Optional[Dict[str, Any]] = None, message: str = '', warnings: list = None) -> 'Result':
        """Create a success result"""
        return cls(
            success=True,
            data=data or {},
            message=message,
            warnings=warnings or []
        )

    @classmethod
    def error(cls, error_message: str, category: str = 'unknown', data: Optional[Dict] = None) -> 'Result':
        """Create an error result"""
        return cls(
            success=False,
            error_message=error_message,
            error_category=category,
            data=data or {}
        )

    @classmethod
    def from_diagnostic(cls, diagnostic: DiagnosticError) -> 'Result':
        """Error result carrying a classified diagnostic"""
        return cls.error(
            diagnostic.message,
            category=diagnostic.category,
            data={
                'diagnostic': format_error_markdown(diagnostic),
                'severity': diagnostic.severity,
            }
        )

    @property
    def heatmap(self):
        """The assembled heatmap of a successful build, else None"""
        return self.data.get('heatmap') if self.success else None

    @property
    def is_empty_state(self) -> bool:
        """Nothing to plot, which is shown as a placeholder rather than an error"""
        return not self.success and self.error_category == 'no_significant_genes'

    def add_warning(self, warning: str):
        """Add a warning to the result"""
        self.warnings.append(warning)

    def to_dict(self) -> Dict:
        """JSON-ready dict; a heatmap is expanded to plain lists"""
        if self.success:
            result = {'status': 'success'}
            for key, value in self.data.items():
                result[key] = value.to_dict() if hasattr(value, 'to_dict') else value
            if self.message:
                result['message'] = self.message
            if self.warnings:
                result['warnings'] = self.warnings
        else:
            result = {
                'status': 'error',
                'error': self.error_message,
                'category': self.error_category
            }
            result.update(self.data)
        return result

    def __bool__(self):
        """Allow using Result in boolean context"""
        return self.success
