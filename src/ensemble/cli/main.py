try:
    import click
except ImportError as e:
    raise ImportError(
        "CLI Dependencies not installed! Install ensemble-sdk with the [cli] extra"
    ) from e


from ensemble.cli.commands import agent, broker, listen, service, task


@click.group("ensemble")
@click.pass_context
def main(ctx: click.Context) -> None:
    """
    Ensemble registries from the command line
    """
    ctx.ensure_object(dict)


main.add_command(agent)
main.add_command(broker)
main.add_command(listen)
main.add_command(service)
main.add_command(task)
