"""Console output: Rich for terminals, JSON when piped."""
