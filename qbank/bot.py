import discord
from discord.ext import commands
import logging
from typing import Any, Dict, List, Optional

from .config_manager import ConfigManager
from .data_manager import ImportReadError
from .quiz_controller import QuizSession, create_session

logger = logging.getLogger(__name__)

CHOICE_LABELS = "ABCDEFGHIJKLMNOPQRSTUVWXY"
# Three rows of five buttons; larger questions use a select menu instead
MAX_CHOICE_BUTTONS = 15
MAX_SELECT_OPTIONS = 25

COLOR_QUESTION = 0x6699ff
COLOR_CORRECT = 0x00aa44
COLOR_WRONG = 0xff0000
COLOR_INFO = 0x00ff00


def choice_label(choice_index: int) -> str:
    return CHOICE_LABELS[choice_index] if choice_index < len(CHOICE_LABELS) else str(choice_index + 1)


def build_question_embed(session: QuizSession) -> discord.Embed:
    """Render the current question, its choices and any reveal state."""
    question = session.current_question
    if question is None:
        return build_empty_embed(session)

    selected = session.selected_choice
    revealed = session.answer_revealed

    if revealed:
        color = COLOR_CORRECT if selected == question.answer else COLOR_WRONG
    else:
        color = COLOR_QUESTION

    embed = discord.Embed(title=question.topic, description=question.stem, color=color)

    lines = []
    for i, choice in enumerate(question.choices):
        marker = ""
        if revealed and i == question.answer:
            marker = " ✅"
        elif revealed and i == selected:
            marker = " ❌"
        elif not revealed and i == selected:
            marker = " ◀"
        lines.append(f"**{choice_label(i)}.** {choice}{marker}")
    embed.add_field(name="Choices", value="\n".join(lines)[:1024], inline=False)

    if revealed:
        verdict = "Correct!" if selected == question.answer else (
            f"Incorrect. The answer is **{choice_label(question.answer)}**."
        )
        embed.add_field(name="Result", value=verdict, inline=False)
        if session.explanation_visible:
            embed.add_field(name="Explanation", value=question.explanation[:1024] or "—", inline=False)

    if session.import_error:
        embed.add_field(name="⚠️ Import", value=session.import_error, inline=False)

    embed.set_footer(text=f"Question {session.current_index + 1} of {session.total_questions}")
    return embed


def build_empty_embed(session: Optional[QuizSession] = None) -> discord.Embed:
    embed = discord.Embed(
        title="No questions loaded",
        description="Import a JSON file to get started with `/import`.",
        color=COLOR_QUESTION
    )
    if session is not None and session.import_error:
        embed.add_field(name="⚠️ Import", value=session.import_error, inline=False)
    return embed


def build_accuracy_embed(session: QuizSession) -> discord.Embed:
    """Render per-topic accuracy, one line per answered topic."""
    embed = discord.Embed(title="📊 Accuracy", color=COLOR_INFO)
    summary = session.accuracy_summary()
    if not summary:
        embed.description = "No questions answered yet"
        return embed

    embed.description = "\n".join(
        f"{entry.topic}: {entry.correct}/{entry.total} ({entry.percent}%)" for entry in summary
    )[:4096]
    overall = session.get_status()['overall']
    embed.set_footer(text=f"Overall: {overall['correct']}/{overall['total']} ({overall['percent']}%)")
    return embed


class ChoiceButton(discord.ui.Button):
    """Button selecting one answer choice."""

    def __init__(self, choice_index: int, style: discord.ButtonStyle, disabled: bool):
        super().__init__(
            label=choice_label(choice_index),
            style=style,
            disabled=disabled,
            row=choice_index // 5,
        )
        self.choice_index = choice_index

    async def callback(self, interaction: discord.Interaction):
        await self.view.bot.handle_select(interaction, self.choice_index)


class ChoiceSelect(discord.ui.Select):
    """Select menu used when a question has too many choices for buttons."""

    def __init__(self, choices: List[str], selected: Optional[int], disabled: bool):
        options = [
            discord.SelectOption(
                label=f"{choice_label(i)}. {choice}"[:100],
                value=str(i),
                default=(i == selected),
            )
            for i, choice in enumerate(choices[:MAX_SELECT_OPTIONS])
        ]
        super().__init__(placeholder="Select an answer", options=options, disabled=disabled, row=0)

    async def callback(self, interaction: discord.Interaction):
        await self.view.bot.handle_select(interaction, int(self.values[0]))


class ControlButton(discord.ui.Button):
    """Button running one session operation."""

    def __init__(self, action: str, label: str, style: discord.ButtonStyle, row: int, disabled: bool = False):
        super().__init__(label=label, style=style, row=row, disabled=disabled)
        self.action = action

    async def callback(self, interaction: discord.Interaction):
        await self.view.bot.handle_action(interaction, self.action)


class QuestionView(discord.ui.View):
    """Buttons for the current question, built from the session state."""

    def __init__(self, bot: "QuizBankBot", session: QuizSession):
        super().__init__(timeout=None)
        self.bot = bot
        question = session.current_question
        revealed = session.answer_revealed
        selected = session.selected_choice

        if question is not None:
            if len(question.choices) <= MAX_CHOICE_BUTTONS:
                for i in range(len(question.choices)):
                    if revealed and i == question.answer:
                        style = discord.ButtonStyle.success
                    elif revealed and i == selected:
                        style = discord.ButtonStyle.danger
                    elif not revealed and i == selected:
                        style = discord.ButtonStyle.primary
                    else:
                        style = discord.ButtonStyle.secondary
                    self.add_item(ChoiceButton(i, style, disabled=revealed))
                control_row = (len(question.choices) - 1) // 5 + 1
            else:
                self.add_item(ChoiceSelect(list(question.choices), selected, disabled=revealed))
                control_row = 1

            self.add_item(ControlButton(
                "check", "Check Answer", discord.ButtonStyle.primary, control_row,
                disabled=selected is None or revealed,
            ))
            if revealed:
                self.add_item(ControlButton(
                    "explanation",
                    "Hide Explanation" if session.explanation_visible else "Show Explanation",
                    discord.ButtonStyle.secondary, control_row,
                ))
            self.add_item(ControlButton(
                "next", "Next" if revealed else "Skip", discord.ButtonStyle.success, control_row,
            ))
            tools_row = control_row + 1
        else:
            tools_row = 0

        self.add_item(ControlButton(
            "accuracy", "Hide Accuracy" if session.show_accuracy else "Show Accuracy",
            discord.ButtonStyle.secondary, tools_row,
        ))
        self.add_item(ControlButton("reset", "Reset Progress", discord.ButtonStyle.secondary, tools_row))
        if question is not None:
            self.add_item(ControlButton("shuffle", "🔀 Shuffle", discord.ButtonStyle.secondary, tools_row))


class QuizBankBot(commands.Bot):
    """Discord front-end for a single question bank session"""

    def __init__(self, config: Optional[Dict[str, Any]] = None, config_manager: Optional[ConfigManager] = None):
        intents = discord.Intents.none()
        intents.guilds = True  # Required for slash commands

        command_prefix = '!'
        if config and 'bot' in config:
            command_prefix = config['bot'].get('command_prefix', '!')

        super().__init__(
            command_prefix=command_prefix,
            intents=intents,
            help_command=None
        )

        self.app_config = config or {}
        self.config_manager = config_manager
        if self.config_manager is None:
            self.config_manager = ConfigManager()
            for problem in self.config_manager.apply_config(self.app_config):
                logger.warning(f"Configuration: {problem}")
        self.session: Optional[QuizSession] = None

    async def setup_hook(self):
        """Called when the bot is starting up"""
        try:
            logger.info("Setting up question bank session...")

            self.session = create_session(self.config_manager.get_settings())
            await self.setup_commands()
            logger.info(f"Bot setup completed with {self.session.total_questions} questions")
        except Exception as e:
            logger.error(f"Error during bot setup: {e}")
            raise

    async def setup_commands(self):
        """Register all slash commands"""

        @self.tree.command(name="help", description="Display available commands")
        async def help_command(interaction: discord.Interaction):
            await self.handle_help(interaction)

        @self.tree.command(name="quiz", description="Show the current question")
        async def quiz_command(interaction: discord.Interaction):
            await self.handle_quiz(interaction)

        @self.tree.command(name="import", description="Replace the question bank with a JSON file")
        async def import_command(interaction: discord.Interaction, file: discord.Attachment):
            await self.handle_import(interaction, file)

        @self.tree.command(name="accuracy", description="Show or hide per-topic accuracy")
        async def accuracy_command(interaction: discord.Interaction):
            await self.handle_toggle_accuracy(interaction)

        @self.tree.command(name="shuffle", description="Shuffle the question bank")
        async def shuffle_command(interaction: discord.Interaction):
            await self.handle_shuffle(interaction)

        @self.tree.command(name="reset", description="Reset progress and accuracy statistics")
        async def reset_command(interaction: discord.Interaction):
            await self.handle_reset(interaction)

        logger.info("Slash commands registered successfully")

    async def on_ready(self):
        """Called when the bot has successfully connected to Discord"""
        logger.info(f"Bot is ready! Logged in as {self.user}")
        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} slash commands")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync slash commands: {e}")

    async def on_error(self, event, *args, **kwargs):
        """Handle general bot errors"""
        logger.error(f"An error occurred in event {event}", exc_info=True)

    def render(self) -> Dict[str, Any]:
        """Message content for the current session state."""
        embeds = []
        if self.session.show_accuracy:
            embeds.append(build_accuracy_embed(self.session))
        embeds.append(build_question_embed(self.session))
        return {'embeds': embeds, 'view': QuestionView(self, self.session)}

    async def ensure_allowed(self, interaction: discord.Interaction) -> bool:
        owner_id = self.config_manager.get_settings().owner_id
        if owner_id is None or interaction.user.id == owner_id:
            return True
        logger.info(f"Refused interaction from user {interaction.user.id}")
        await self.send_error_response(interaction, "This question bank belongs to another user.", "⛔ Not Allowed")
        return False

    async def handle_help(self, interaction: discord.Interaction):
        """Handle /help command"""
        embed = discord.Embed(
            title="🎯 Question Bank Commands",
            description="Practice multiple-choice questions and track accuracy by topic",
            color=COLOR_INFO
        )
        embed.add_field(
            name="📋 Commands",
            value=(
                "`/quiz` - Show the current question\n"
                "`/import <file>` - Replace the bank with a JSON file (array or {\"questions\": [...]})\n"
                "`/accuracy` - Show or hide per-topic accuracy\n"
                "`/shuffle` - Shuffle the question bank\n"
                "`/reset` - Go back to the first question and clear accuracy\n"
                "`/help` - Show this message"
            ),
            inline=False
        )
        embed.add_field(name="⚙️ Settings", value=self.config_manager.get_settings_summary(), inline=False)
        await interaction.response.send_message(embed=embed, ephemeral=True)

    async def handle_quiz(self, interaction: discord.Interaction):
        """Handle /quiz command"""
        if not await self.ensure_allowed(interaction):
            return
        await interaction.response.send_message(**self.render())

    async def handle_select(self, interaction: discord.Interaction, choice_index: int):
        """Handle a choice button or select menu"""
        if not await self.ensure_allowed(interaction):
            return
        self.session.select_choice(choice_index)
        await interaction.response.edit_message(**self.render())

    async def handle_action(self, interaction: discord.Interaction, action: str):
        """Handle a control button on the question message"""
        if not await self.ensure_allowed(interaction):
            return

        if action == "check":
            self.session.check_answer()
        elif action == "explanation":
            self.session.toggle_explanation()
        elif action == "next":
            self.session.next_question()
        elif action == "shuffle":
            self.session.shuffle_bank()
        elif action == "reset":
            self.session.reset_progress()
        elif action == "accuracy":
            self.session.toggle_accuracy()
        else:
            logger.warning(f"Unknown control action: {action}")
            await self.send_error_response(interaction, "Unknown action.")
            return

        await interaction.response.edit_message(**self.render())

    async def handle_toggle_accuracy(self, interaction: discord.Interaction):
        """Handle /accuracy command"""
        if not await self.ensure_allowed(interaction):
            return
        self.session.toggle_accuracy()
        await interaction.response.send_message(**self.render())

    async def handle_shuffle(self, interaction: discord.Interaction):
        """Handle /shuffle command"""
        if not await self.ensure_allowed(interaction):
            return
        self.session.shuffle_bank()
        await interaction.response.send_message(**self.render())

    async def handle_reset(self, interaction: discord.Interaction):
        """Handle /reset command"""
        if not await self.ensure_allowed(interaction):
            return
        self.session.reset_progress()
        await interaction.response.send_message(**self.render())

    async def handle_import(self, interaction: discord.Interaction, attachment: discord.Attachment):
        """Handle /import command"""
        if not await self.ensure_allowed(interaction):
            return

        max_bytes = self.config_manager.get_settings().max_import_bytes
        if attachment.size > max_bytes:
            logger.warning(f"Import attachment {attachment.filename} is {attachment.size} bytes")
            await self.send_error_response(interaction, ImportReadError.user_message, "❌ Import Error")
            return

        await interaction.response.defer(thinking=True)
        try:
            data = await attachment.read()
        except discord.HTTPException as e:
            logger.error(f"Failed to download import attachment {attachment.filename}: {e}")
            await self.send_error_response(interaction, ImportReadError.user_message, "❌ Import Error")
            return

        result = self.session.import_questions(data)
        if not result['success']:
            await self.send_error_response(interaction, result['user_message'], "❌ Import Error")
            return

        logger.info(f"Imported {result['question_count']} questions from {attachment.filename}")
        await interaction.followup.send(content=f"✅ {result['user_message']}", **self.render())

    async def send_error_response(self, interaction: discord.Interaction, message: str, title: str = "❌ Error"):
        """Send formatted error response to user"""
        try:
            embed = discord.Embed(
                title=title,
                description=message,
                color=COLOR_WRONG
            )

            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.error("Failed to send error response to user")


async def run_bot(token: str, config: Optional[Dict[str, Any]] = None, config_manager: Optional[ConfigManager] = None):
    """Run the bot with proper error handling"""
    bot = QuizBankBot(config, config_manager)

    try:
        logger.info("Starting question bank bot...")
        await bot.start(token)
    except discord.LoginFailure:
        logger.error("Invalid bot token provided")
    except discord.HTTPException as e:
        logger.error(f"HTTP error occurred: {e}")
    finally:
        if not bot.is_closed():
            await bot.close()
