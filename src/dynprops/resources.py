from importlib import resources


def load_grammar() -> str:
    with resources.files(__package__).joinpath("data/GRAMMAR.md").open("r", encoding="utf-8") as fh:
        return fh.read()
