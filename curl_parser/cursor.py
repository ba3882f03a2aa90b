QUOTES = ("'", '"')
# внутри двойных кавычек backslash экранирует только эти символы
DOUBLE_QUOTE_ESCAPES = ('"', "\\", "$", "`")


class CommandLineCursor:
    """Курсор по ещё не разобранной части командной строки.

    Текст не копируется: все операции только сдвигают позицию ``pos``.
    """

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def __len__(self):
        return len(self.text) - self.pos

    def __bool__(self):
        return self.pos < len(self.text)

    @property
    def remaining(self) -> str:
        return self.text[self.pos:]

    def _peek(self, offset=0):
        i = self.pos + offset
        return self.text[i] if i < len(self.text) else ""

    def trim_leading(self):
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def is_parameter(self) -> bool:
        self.trim_leading()
        if self._peek() != "-":
            return False
        nxt = self._peek(1)
        if nxt == "-":
            nxt = self._peek(2) or nxt
        return bool(nxt) and not nxt.isspace()

    def read_parameter(self) -> str:
        """Читает флаг без ведущих дефисов: ``--header`` -> ``header``.

        Останавливается на пробеле или '='; сам '=' съедается, чтобы
        ``--data=x`` отдавал значение следующему read_value().
        """
        self.trim_leading()
        dashes = 0
        while dashes < 2 and self._peek() == "-":
            self.pos += 1
            dashes += 1
        start = self.pos
        while self.pos < len(self.text):
            ch = self.text[self.pos]
            if ch.isspace() or ch == "=":
                break
            self.pos += 1
        name = self.text[start:self.pos]
        if self._peek() == "=":
            self.pos += 1
        return name

    def read_value(self) -> str:
        """Читает одно shell-слово.

        Кавычки снимаются, соседние куски склеиваются (``'a'"b"c`` -> ``abc``).
        Незакрытая кавычка читается до конца строки, это не ошибка.
        """
        self.trim_leading()
        chunks = []
        text = self.text
        while self.pos < len(text):
            ch = text[self.pos]
            if ch.isspace():
                break
            if ch == "'":
                end = text.find("'", self.pos + 1)
                if end == -1:
                    end = len(text)
                chunks.append(text[self.pos + 1:end])
                self.pos = min(end + 1, len(text))
            elif ch == '"':
                chunks.append(self._read_double_quoted())
            else:
                start = self.pos
                while self.pos < len(text) and not text[self.pos].isspace() and text[self.pos] not in QUOTES:
                    self.pos += 1
                chunks.append(text[start:self.pos])
        return "".join(chunks)

    def _read_double_quoted(self):
        text = self.text
        self.pos += 1
        chunks = []
        start = self.pos
        while self.pos < len(text):
            ch = text[self.pos]
            if ch == "\\" and self.pos + 1 < len(text) and text[self.pos + 1] in DOUBLE_QUOTE_ESCAPES:
                chunks.append(text[start:self.pos])
                chunks.append(text[self.pos + 1])
                self.pos += 2
                start = self.pos
            elif ch == '"':
                chunks.append(text[start:self.pos])
                self.pos += 1
                return "".join(chunks)
            else:
                self.pos += 1
        chunks.append(text[start:])
        return "".join(chunks)
