from parmap.main import parmap

if __name__ == "__main__":  # pragma: no cover
    parmap(prog_name="parmap")
