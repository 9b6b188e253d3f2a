"""Git branch status tool.

Features:
- List recently active branches with their relative age
- Count commits each branch has over its upstream or the default branch
- Show each branch's latest commit subject, or all of its unmerged commits
- Filter merged or unmerged branches
"""

__version__ = "0.1.0"
