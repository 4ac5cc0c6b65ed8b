"""Developer CLI for inspecting and driving a local review store."""
