"""Django management command to ask the assistant a question from the shell."""

from asgiref.sync import async_to_sync
from django.core.management.base import BaseCommand

from assistant.router import get_pipeline


class Command(BaseCommand):
    help = "Ask a question about the Jira project and print the reply"

    def add_arguments(self, parser):
        parser.add_argument("question", nargs="+", help="The question to ask")
        parser.add_argument("--session", default=None, help="Session id for follow-up questions")
        parser.add_argument("--meta", action="store_true", help="Also print intent and JQL details")

    def handle(self, *args, **options):
        question = " ".join(options["question"])
        reply = async_to_sync(get_pipeline().handle)(question, options["session"])

        self.stdout.write(reply.message)
        if options["meta"]:
            self.stdout.write("")
            for key, value in reply.meta.items():
                self.stdout.write(f"{key}: {value}", self.style.NOTICE)
