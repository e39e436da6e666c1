from .logger_stream import LoggerStream


class LoggerContext:
    def __init__(
        self,
        name: str = "default",
        template: str | None = None,
        filename: str | None = None,
        directory: str | None = None,
        nested: bool = False,
    ) -> None:
        self.name = name
        self.template = template
        self.filename = filename
        self.directory = directory
        self.nested = nested
        self.stream = LoggerStream(
            name=name,
            template=template,
            filename=filename,
            directory=directory,
        )

    async def __aenter__(self):
        stream = self.stream
        await stream.initialize()

        stream.set_defaults(
            template=self.template,
            filename=self.filename,
            directory=self.directory,
        )

        if self.filename:
            await stream.open_file(
                self.filename,
                directory=self.directory,
                is_default=True,
            )

        return stream

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        # Nested contexts leave the stream open for the enclosing one.
        if self.nested is False:
            await self.stream.close()
