"""Git command execution, repository operations and Git LFS helpers."""