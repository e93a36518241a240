"""
CodeKarmic - Prompt Templates

Review prompt catalogs for the "diff", "full file" and "large file" flows, in
English and Chinese. The coordinator only sees the PromptTemplates interface,
so swapping wording or language never touches compression or batching code.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Callable, Dict


def file_type_suffix(file_path: str) -> str:
    """Extension of the file name without the leading dot ("" when absent)."""
    name = PurePosixPath((file_path or "").replace("\\", "/")).name
    return PurePosixPath(name).suffix.lstrip(".")


@dataclass(frozen=True)
class PromptTemplates:
    """A prompt catalog for one output language."""

    language: str
    system_role: str
    _diff: Callable[[str, str], str]
    _full_file: Callable[[str, str, str], str]
    _large_file: Callable[[str, str, str], str]

    def diff_prompt(self, file_path: str, diff_content: str) -> str:
        return self._diff(file_path, diff_content)

    def full_file_prompt(self, file_path: str, file_type: str, content: str) -> str:
        return self._full_file(file_path, file_type, content)

    def large_file_prompt(self, file_path: str, file_type: str, content_summary: str) -> str:
        return self._large_file(file_path, file_type, content_summary)


# =============================================================================
# ENGLISH
# =============================================================================

_EN_DIFF = (
    "Please review the following code changes in detail, focusing on potential issues and "
    "improvement opportunities.\n"
    "File: {file_path}\n"
    "Changes:\n"
    "{diff}\n"
    "\n"
    "Please list improvement suggestions directly."
)

_EN_FULL_FILE = """Please review the following code according to the code review template:

File: {file_path} {file_type}
Code Content:
{content}

Please focus on:
1. Code Structure and Organization
   - File structure rationality
   - Module division clarity
   - Code layering appropriateness
   - Dependency relationships

2. Implementation
   - Naming conventions
   - Code complexity
   - Code duplication
   - Comment completeness
   - Exception handling
   - Boundary condition handling

3. Performance Considerations
   - Algorithm efficiency
   - Resource usage
   - Concurrency handling
   - Memory management

4. Security
   - Input validation
   - Access control
   - Sensitive information handling
   - Security vulnerability prevention

For each issue, please provide suggestions in the following format:
[line number] Issue description and improvement suggestion"""

_EN_LARGE_FILE = """Please review the following large code file using its summarized content. Due to the file size, a compressed summary is provided:

File: {file_path} {file_type}
Code Summary:
{summary}

Focus on the high-level structure, patterns, and potential issues visible from this summary.
Consider efficient algorithms, memory usage, and appropriate compression techniques when applicable.

Please provide recommendations for:
1. Overall architecture and design patterns
2. Potential performance optimizations
3. Code organization improvements
4. Any apparent issues or anti-patterns

For each issue, please provide suggestions in the following format:
[section] Issue description and improvement suggestion"""

ENGLISH = PromptTemplates(
    language="ENGLISH",
    system_role=(
        "You are a professional code review expert. Please analyze the code comprehensively, "
        "focus on the changes, and provide specific improvement suggestions."
    ),
    _diff=lambda file_path, diff: _EN_DIFF.format(file_path=file_path, diff=diff),
    _full_file=lambda file_path, file_type, content: _EN_FULL_FILE.format(
        file_path=file_path, file_type=file_type, content=content
    ),
    _large_file=lambda file_path, file_type, summary: _EN_LARGE_FILE.format(
        file_path=file_path, file_type=file_type, summary=summary
    ),
)


# =============================================================================
# CHINESE
# =============================================================================

_ZH_DIFF = "请详细审查以下代码变更，关注潜在问题和改进机会。\n文件：{file_path}\n变更：\n{diff}\n\n请直接列出改进建议。"

_ZH_FULL_FILE = """请根据代码审查模板审查以下代码：

文件：{file_path} {file_type}
代码内容：
{content}

请重点关注：
1. 代码结构和组织
   - 文件结构合理性
   - 模块划分清晰度
   - 代码分层适当性
   - 依赖关系

2. 实现
   - 命名规范
   - 代码复杂性
   - 代码重复
   - 注释完整性
   - 异常处理
   - 边界条件处理

3. 性能考虑
   - 算法效率
   - 资源使用
   - 并发处理
   - 内存管理

4. 安全性
   - 输入验证
   - 访问控制
   - 敏感信息处理
   - 安全漏洞防范

对于每个问题，请按以下格式提供建议：
[行号] 问题描述和改进建议"""

_ZH_LARGE_FILE = """请使用其摘要内容审查以下大型代码文件。由于文件大小，提供了压缩摘要：

文件：{file_path} {file_type}
代码摘要：
{summary}

请关注从此摘要中可见的高级结构、模式和潜在问题。
在适用的情况下，考虑高效算法、内存使用和适当的压缩技术。

请为以下方面提供建议：
1. 整体架构和设计模式
2. 潜在的性能优化
3. 代码组织改进
4. 任何明显的问题或反模式

对于每个问题，请按以下格式提供建议：
[部分] 问题描述和改进建议"""

CHINESE = PromptTemplates(
    language="CHINESE",
    system_role="您是一位专业的代码审查专家。请全面分析代码，关注变更部分，并提供具体的改进建议。",
    _diff=lambda file_path, diff: _ZH_DIFF.format(file_path=file_path, diff=diff),
    _full_file=lambda file_path, file_type, content: _ZH_FULL_FILE.format(
        file_path=file_path, file_type=file_type, content=content
    ),
    _large_file=lambda file_path, file_type, summary: _ZH_LARGE_FILE.format(
        file_path=file_path, file_type=file_type, summary=summary
    ),
)


_CATALOGS: Dict[str, PromptTemplates] = {
    "english": ENGLISH,
    "en": ENGLISH,
    "chinese": CHINESE,
    "zh": CHINESE,
}


def get_prompt_templates(language: str = "ENGLISH") -> PromptTemplates:
    """Catalog for ``language`` (ENGLISH/CHINESE, or en/zh)."""
    key = (language or "").strip().lower()
    if key not in _CATALOGS:
        raise ValueError(f"Unsupported prompt language: {language!r}")
    return _CATALOGS[key]
