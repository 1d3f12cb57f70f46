"""
Corpus Curation Engine

Lifecycle state machine, quality gates, retry control and approval ledgers
for language-learning corpus items (meanings, utterances, grammar rules,
exercises) moving Draft -> Candidate -> Validated -> Approved.

**Version**: 0.1.0
**Python**: >=3.11
**Key Dependencies**: pydantic, python-dotenv, loguru, tqdm
"""
