"""codebrain — incremental knowledge index and Q&A over a software project."""
